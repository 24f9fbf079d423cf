"""Report and resolve message templates.

Formatting is a pure function of the record, the wall-clock time and a
random source. It never feeds back into lifecycle decisions.
"""

from __future__ import annotations

import random
from datetime import datetime

from kubeproblem.models.problems import ProblemRecord

GREETINGS: tuple[str, ...] = (
    "Guys real talk :point_up:,",
    "It's me again, the lovely bot from the neighborhood and",
    "Alright, so",
    "Yo bois :dark_sunglasses:,",
    "Sorry to interrupt,",
    "I'm back :v:,",
    "Yes I know I'm annoying :grin:, but",
    "Where is the cluster admin :face_with_monocle:, because",
    "I just wanted to chill :expressionless: and then I checked the cluster one more time and",
    "What would you do without me? I just checked the cluster again and",
)

_SATURDAY = 5
_SUNDAY = 6


def pick_greeting(now: datetime, rng: random.Random | None = None) -> str:
    """Pick an opener; one slot out of len(GREETINGS) + 1 depends on *now*."""
    rng = rng or random.Random()
    index = rng.randrange(len(GREETINGS) + 1)
    if index < len(GREETINGS):
        return GREETINGS[index]
    return _time_greeting(now)


def _time_greeting(now: datetime) -> str:
    weekday = now.weekday()
    if weekday == _SUNDAY:
        return "Damn sorry to interrupt your Sunday :face_with_rolling_eyes:, but"
    if weekday == _SATURDAY:
        return "Yes I know it's weekend, but"
    if now.hour < 12:
        return "Good morning everyone :wave:,"
    if now.hour < 15:
        return "Hello everyone :wave:,"
    if now.hour < 18:
        return "Good afternoon everyone :wave:,"
    return "Good evening everyone :wave:,"


def format_report(record: ProblemRecord, now: datetime, rng: random.Random | None = None) -> str:
    greeting = pick_greeting(now, rng)
    where = f"{record.ref.kind} '{record.ref.name}'"
    if record.ref.namespace:
        where += f" in namespace '{record.ref.namespace}'"
    return f"{greeting} there seems to be a problem with {where}: {record.message}"


def format_resolve(record: ProblemRecord, now: datetime, rng: random.Random | None = None) -> str:
    greeting = pick_greeting(now, rng)
    return (
        f"{greeting} do you remember the problem with {record.ref.kind} '{record.ref.name}'? "
        "Good news, seems like this is not a problem anymore :tada:"
    )
