"""Route handlers for the status API.

All handlers only read the registry; the reconciliation loop is its sole writer.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubeproblem.api.schemas import HealthResponse, ProblemListResponse, ProblemOut
from kubeproblem.models.problems import ProblemRecord

router = APIRouter()

# A cycle older than this many poll intervals marks the loop as stalled.
_STALL_FACTOR = 3


@router.get("/healthz", response_model=HealthResponse)
async def healthz(request: Request) -> JSONResponse:
    from kubeproblem import __version__

    controller = request.app.state.controller
    registry = request.app.state.registry
    last_cycle_at: datetime | None = getattr(controller, "last_cycle_at", None)

    status = "ok"
    code = 200
    if last_cycle_at is None:
        status = "starting"
    else:
        max_age = timedelta(seconds=float(controller.interval) * _STALL_FACTOR)
        if datetime.now(tz=UTC) - last_cycle_at > max_age:
            status = "stalled"
            code = 503

    body = HealthResponse(
        status=status,
        version=__version__,
        last_cycle_at=last_cycle_at,
        tracked_problems=len(registry),
    )
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


@router.get("/api/v1/problems", response_model=ProblemListResponse)
async def list_problems(request: Request, reported: bool | None = None) -> ProblemListResponse:
    records = request.app.state.registry.records()
    if reported is not None:
        records = [r for r in records if r.reported == reported]
    problems = [_to_out(r) for r in records]
    return ProblemListResponse(count=len(problems), problems=problems)


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def _to_out(record: ProblemRecord) -> ProblemOut:
    return ProblemOut(
        resource_kind=record.ref.kind.value,
        name=record.ref.name,
        namespace=record.ref.namespace,
        problem_kind=record.kind.value,
        message=record.message,
        occurrences=record.occurrences,
        resolutions=record.resolutions,
        report_threshold=record.policy.report_threshold,
        resolve_threshold=record.policy.resolve_threshold,
        reported=record.reported,
        first_observed=record.first_observed,
        last_observed=record.last_observed,
    )
