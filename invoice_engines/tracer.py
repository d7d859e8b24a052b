"""
invoice_engines.tracer -- INVOICE_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function and, after each call,
    logs one INVOICE_ENGINE_TRACE record naming the engine, its version,
    how long the call took and a fingerprint of the inputs that matter.
    Two calls with equal fingerprinted inputs carry equal fingerprints, so
    a trace can be matched against a replay of the same edit session.

Architecture position:
    Engines -- support code for the pure calculation layer.  The only side
    effect is the log record; results pass through untouched.

Failure modes:
    - A fingerprint field the call did not supply hashes as "null".
    - Values of unknown types hash through ``str()``.
    - Exceptions from the wrapped engine propagate and no trace is logged.

Usage:
    from invoice_engines.tracer import traced_engine

    @traced_engine("pricing", "1.0", fingerprint_fields=("lines", "charges"))
    def price_lines(lines, charges=Decimal("0")):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from invoice_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_EVENT = "INVOICE_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return _canonical(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonical(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonical, value)) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hex prefix of the SHA-256 over ``name=value`` pairs of the chosen fields."""
    canonical = "|".join(
        f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable], Callable]:
    """Log an INVOICE_ENGINE_TRACE record after each call of the wrapped engine.

    ``fingerprint_fields`` are parameter names; arguments are bound against
    the function signature, so positional and keyword calls hash alike.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - started

            fingerprint = ""
            if fingerprint_fields:
                arguments = signature.bind_partial(*args, **kwargs).arguments
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)

            logger.info(
                TRACE_EVENT,
                extra={
                    "trace_type": TRACE_EVENT,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
