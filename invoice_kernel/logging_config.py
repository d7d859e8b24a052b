"""
Structured JSON logging for the invoice kernel.

Every record under the ``invoice_kernel`` logger namespace is rendered as
one JSON object per line:

    {"ts": ..., "level": ..., "logger": ..., "message": "order_priced",
     "order_id": "ord-42", "grand_total": "819.00", ...}

- ``message`` is a snake_case event name; details go in ``extra=``.
- Session fields bound through ``LogContext`` (order being edited,
  operator, browser session) are merged into every record.
- Decimals are written as strings so amounts survive the round trip
  exactly; enums as their value.
- Exceptions contribute ``exc_type``, ``exc_message``, the kernel ``code``
  and each public attribute as ``exc_<name>``.

Usage:
    from invoice_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.invoice_editor")
    with LogContext.bind(order_id="ord-42"):
        logger.info("invoice_submission_accepted", extra={"total": "819.00"})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_NAMESPACE = "invoice_kernel"


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "order_id", "actor_id", "session_id")

_context: ContextVar[Mapping[str, str]] = ContextVar("invoice_log_context", default={})


class LogContext:
    """Session-scoped log fields, safe across threads and asyncio tasks.

    Fields: correlation_id, order_id, actor_id, session_id.
    """

    @staticmethod
    def _merged(fields: Mapping[str, str | None]) -> dict[str, str]:
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        order_id: str | None = None,
        actor_id: str | None = None,
        session_id: str | None = None,
    ) -> None:
        """Update fields; None leaves a field as it is."""
        _context.set(cls._merged({
            "correlation_id": correlation_id,
            "order_id": order_id,
            "actor_id": actor_id,
            "session_id": session_id,
        }))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Currently bound fields (unset fields are absent)."""
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a block, then restore the previous set."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(LogContext.get_all())
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )

        if record.exc_info and record.exc_info[1] is not None:
            entry.update(_exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``invoice_kernel.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the invoice_kernel namespace.

    Only the first call has an effect until ``reset_logging()``.

    Args:
        level: Level number or name ("DEBUG", "INFO", ...)
        stream: Target stream for the default handler (stderr when None)
        handler: Handler to use instead of a stream handler
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        namespace = logging.getLogger(_NAMESPACE)
        namespace.setLevel(level.upper() if isinstance(level, str) else level)
        namespace.propagate = False
        namespace.addHandler(target)
        _installed_handler = target


def reset_logging() -> None:
    """Remove the installed handler and restore defaults. FOR TESTING ONLY."""
    global _installed_handler
    with _setup_lock:
        _installed_handler = None
        namespace = logging.getLogger(_NAMESPACE)
        namespace.handlers.clear()
        namespace.setLevel(logging.WARNING)
        namespace.propagate = True
