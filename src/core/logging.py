"""Logfire setup and structured logging helpers for familyquest.

Modules log through `logging.getLogger(__name__)` with `extra={...}` fields;
Logfire's handler forwards them with those fields attached. Service
operations run inside `span("<service>.<operation>")`.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


# Attributes of logging.LogRecord that `extra` may not overwrite
RESERVED_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def configure_logfire() -> None:
    """Configure Logfire and route standard logging records through it."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="familyquest",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(level=logging.INFO, handlers=[logfire.LogfireLoggingHandler()])
    logging.getLogger(__name__).info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    logfire.instrument_fastapi(app)
    logging.getLogger(__name__).info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span, e.g. `with span("task_service.claim_task"):`."""
    return logfire.span(name)


def safe_extra(context: dict[str, object]) -> dict[str, object]:
    """Prefix keys that would clash with LogRecord attributes (`name` becomes `ctx_name`)."""
    return {f"ctx_{key}" if key in RESERVED_RECORD_KEYS else key: value for key, value in context.items()}


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log `message` at `level` ("debug" to "critical") with `context` as structured fields."""
    log_method = getattr(logger, level.lower())
    log_method(message, extra=safe_extra(context))


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Like log_with_context, tagging the record with the acting user's id when known.

    Used by the authorization checks, e.g.
    `log_with_user_context(logger, "warning", "authorization_denied_role", user_id=actor.id, required_role="ADMIN")`.
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    log_with_context(logger, level, message, **context)
