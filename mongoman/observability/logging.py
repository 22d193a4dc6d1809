"""
Contextual logging for MONGOMAN.

Two pieces of context follow a request or CLI command through every log
record it produces:

- the correlation id, set per HTTP request from ``X-Correlation-ID`` (or
  generated), and
- the operation target, the database and collection being backed up,
  restored, imported or exported.

Both live in ``contextvars`` so concurrent requests on one event loop keep
their own values.
"""

import contextvars
import logging
import uuid
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "mongoman_correlation_id", default=None
)
_operation_target: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "mongoman_operation_target", default={}
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind a correlation id to the current context.

    Args:
        correlation_id: Id sent by the caller; a new uuid4 when None or empty

    Returns:
        The id now in effect
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_operation_context(
    db_name: str | None = None, collection_name: str | None = None, **extra: Any
) -> None:
    """Name the database (and collection) the current operation works on."""
    target = {"db_name": db_name, "collection_name": collection_name, **extra}
    _operation_target.set({k: v for k, v in target.items() if v is not None})


def clear_operation_context() -> None:
    _operation_target.set({})


def get_logging_context() -> dict[str, Any]:
    """Correlation id and operation target as record attributes."""
    context = dict(_operation_target.get())
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps the current context onto each record.

    Values passed in ``extra`` win over the context.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Emit the one summary record of a console operation.

    The message reads ``Operation: <name>`` (``Operation failed: <name>`` on
    failure) with the duration appended when known; everything else travels
    as record attributes.

    Args:
        logger: Plain logger or contextual adapter
        operation: Dotted operation name, e.g. "backup.database"
        level: Log level of the record
        success: Whether the operation completed
        duration_ms: Wall time in milliseconds
        **context: Counts and names worth keeping (collections, documents, error)
    """
    attributes = {**get_logging_context(), "operation": operation, "success": success}
    parts = [f"Operation: {operation}" if success else f"Operation failed: {operation}"]
    if duration_ms is not None:
        attributes["duration_ms"] = round(duration_ms, 2)
        parts.append(f"(duration: {duration_ms:.2f}ms)")
    attributes.update(context)

    logger.log(level, " ".join(parts), extra=attributes)
