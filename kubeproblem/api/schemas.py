"""Pydantic response models for the status API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str  # "starting" | "ok" | "stalled"
    version: str
    last_cycle_at: datetime | None = None
    tracked_problems: int = 0


class ProblemOut(BaseModel):
    """A tracked problem as exposed over HTTP."""

    resource_kind: str
    name: str
    namespace: str
    problem_kind: str
    message: str
    occurrences: int
    resolutions: int
    report_threshold: int
    resolve_threshold: int
    reported: bool
    first_observed: datetime
    last_observed: datetime


class ProblemListResponse(BaseModel):
    count: int
    problems: list[ProblemOut]
