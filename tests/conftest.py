"""
Pytest fixtures for the invoice kernel test suite.

Provides:
- Structured logging configured for the whole session
- Product and service catalog snapshots (tyres, wheels, fitting services)
- A payment row factory
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from invoice_kernel.domain.order import (
    CatalogItem,
    ItemKind,
    PaymentEntry,
    PaymentMethod,
    PaymentStatus,
)
from invoice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture invoice_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            resolve_lines(...)
            logs = captured_logs()
            assert any(r["message"] == "lines_resolved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("invoice_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Catalog fixtures
# =============================================================================


@pytest.fixture
def products() -> dict[str, CatalogItem]:
    """Product snapshot: one item of each stock situation."""
    items = [
        CatalogItem("tyre-205", "Tyre 205/55R16", Decimal("100.00"), stock=5, sku="TY-205"),
        CatalogItem("wheel-17", "Alloy Wheel 17in", Decimal("249.95"), stock=0, sku="WH-17"),
        CatalogItem("valve-std", "Valve Stem", Decimal("2.50"), stock=40, sku="VS-1"),
    ]
    return {item.item_id: item for item in items}


@pytest.fixture
def services() -> dict[str, CatalogItem]:
    """Service snapshot: unconstrained stock."""
    items = [
        CatalogItem("align", "Wheel Alignment", Decimal("60.00"), kind=ItemKind.SERVICE),
        CatalogItem("fit", "Tyre Fitting", Decimal("20.00"), kind=ItemKind.SERVICE),
    ]
    return {item.item_id: item for item in items}


@pytest.fixture
def catalog(products, services) -> dict[str, CatalogItem]:
    return {**products, **services}


# =============================================================================
# Payment fixtures
# =============================================================================


@pytest.fixture
def make_payment():
    """Factory for payment rows: make_payment("p1", "40.00", status="partial")."""

    def _make(
        entry_id: str,
        amount: str = "",
        status: PaymentStatus | str | None = PaymentStatus.FULL,
        method: PaymentMethod = PaymentMethod.CASH,
        note: str = "",
    ) -> PaymentEntry:
        return PaymentEntry(
            entry_id=entry_id,
            method=method,
            status=PaymentStatus.parse(status),
            amount=amount,
            note=note,
        )

    return _make
