"""Render domain errors as structured JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.errors import ErrorCode, FamilyQuestError, classify_error_with_response


logger = logging.getLogger(__name__)


def _render(exc: Exception) -> JSONResponse:
    error = classify_error_with_response(exc)
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.model_dump(mode="json", exclude={"status_code"})},
    )


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Map a FamilyQuestError to its HTTP status."""
    response = _render(exc)
    log = logger.error if response.status_code >= 500 else logger.info
    log(
        "request_failed",
        extra={"path": request.url.path, "error_type": type(exc).__name__, "error": str(exc)},
    )
    return response


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log and answer 500 ERR_UNKNOWN."""
    logger.exception("unhandled_error", extra={"path": request.url.path, "error_code": ErrorCode.ERR_UNKNOWN})
    return _render(exc)


def register_error_handlers(app: FastAPI) -> None:
    """Install the exception handlers on `app`."""
    app.add_exception_handler(FamilyQuestError, handle_domain_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
