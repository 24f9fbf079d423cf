"""Status API: a read-only view of the registry next to the reconciliation loop."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kubeproblem.api.routes import router
from kubeproblem.api.schemas import ErrorResponse
from kubeproblem.observability.logging import get_logger

_log = get_logger("api.app")


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())


async def _invalid_parameter(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Only query parameters are validated, e.g. ?reported=maybe.
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    field = str(loc[-1]) if loc else "request"
    return _error(400, "INVALID_PARAMETER", f"Invalid value for '{field}'")


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    _log.error("unhandled_exception", path=request.url.path, error=str(exc))
    return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")


def create_app(registry: Any, controller: Any) -> FastAPI:
    """Build the app serving ``registry`` and the health of ``controller``."""
    app = FastAPI(title="kube-problem", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.registry = registry
    app.state.controller = controller
    app.include_router(router)
    app.add_exception_handler(RequestValidationError, _invalid_parameter)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _internal_error)
    return app
