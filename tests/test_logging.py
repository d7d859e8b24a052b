"""Structured JSON logging: formatter envelope, session context, setup."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from invoice_kernel.domain.order import PaymentStatus
from invoice_kernel.exceptions import OrderSettledError, PaymentEntryNotFoundError
from invoice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _stream_handler() -> tuple[logging.Handler, StringIO]:
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    return handler, buffer


@pytest.fixture
def emitted():
    """Install a buffered JSON handler; calling the fixture returns parsed lines."""
    handler, buffer = _stream_handler()
    configure_logging(handler=handler)

    def lines() -> list[dict]:
        return [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    return lines


log = get_logger("tests.logging")


class TestEnvelope:

    def test_fixed_keys(self, emitted):
        log.info("draft_saved")

        (entry,) = emitted()
        assert entry["message"] == "draft_saved"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "invoice_kernel.tests.logging"
        assert entry["ts"].endswith("+00:00")

    def test_extras_are_top_level(self, emitted):
        log.info("order_priced", extra={"line_count": 3, "grand_total": "180.00"})

        (entry,) = emitted()
        assert (entry["line_count"], entry["grand_total"]) == (3, "180.00")

    def test_below_level_dropped(self, emitted):
        log.debug("noise")
        log.warning("tolerance_exceeded", extra={"over_by": "0.02"})

        assert [e["message"] for e in emitted()] == ["tolerance_exceeded"]

    def test_value_types(self, emitted):
        row_id = uuid4()
        log.info(
            "payment_row",
            extra={
                "row_id": row_id,
                "amount": Decimal("60.00"),
                "status": PaymentStatus.PARTIAL,
                "due": date(2026, 3, 1),
                "fields": {"products", "paymentTotal"},
            },
        )

        (entry,) = emitted()
        assert entry["row_id"] == str(row_id)
        assert entry["amount"] == "60.00"
        assert entry["status"] == "partial"
        assert entry["due"] == "2026-03-01"
        assert entry["fields"] == ["paymentTotal", "products"]


class TestExceptions:

    def test_plain_exception(self, emitted):
        try:
            int("twelve")
        except ValueError:
            log.exception("quantity_unparseable")

        (entry,) = emitted()
        assert entry["exc_type"] == "ValueError"
        assert "twelve" in entry["exc_message"]
        assert "Traceback" in entry["traceback"]
        assert "exc_code" not in entry

    def test_kernel_error_code_and_attributes(self, emitted):
        try:
            raise PaymentEntryNotFoundError("row-9")
        except PaymentEntryNotFoundError:
            log.error("payment_edit_failed", exc_info=True)

        (entry,) = emitted()
        assert entry["exc_code"] == "PAYMENT_ENTRY_NOT_FOUND"
        assert entry["exc_entry_id"] == "row-9"

    def test_settled_order_error(self, emitted):
        try:
            raise OrderSettledError("ord-1")
        except OrderSettledError:
            log.warning("edit_refused", exc_info=True)

        (entry,) = emitted()
        assert entry["exc_code"] == "ORDER_SETTLED"
        assert entry["exc_order_id"] == "ord-1"


class TestLogContext:

    def test_context_merged_into_records(self, emitted):
        LogContext.set(order_id="ord-456", session_id="tab-2")
        log.info("invoice_submission_accepted")

        (entry,) = emitted()
        assert entry["order_id"] == "ord-456"
        assert entry["session_id"] == "tab-2"

    def test_absent_when_unbound(self, emitted):
        log.info("bare")

        (entry,) = emitted()
        assert not {"correlation_id", "order_id", "actor_id", "session_id"} & entry.keys()

    def test_set_keeps_other_fields(self):
        LogContext.set(order_id="ord-1")
        LogContext.set(actor_id="clerk-7")
        assert LogContext.get_all() == {"order_id": "ord-1", "actor_id": "clerk-7"}

    def test_clear(self):
        LogContext.set(correlation_id="c-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_overrides_then_restores(self):
        LogContext.set(order_id="outer")
        with LogContext.bind(order_id="inner", session_id="s1"):
            assert LogContext.get_all() == {"order_id": "inner", "session_id": "s1"}
        assert LogContext.get_all() == {"order_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(order_id="ord-9"):
                raise RuntimeError("submit failed")
        assert LogContext.get_all() == {}

    def test_bind_skips_none(self):
        with LogContext.bind(order_id=None, session_id="s1"):
            assert LogContext.get_all() == {"session_id": "s1"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="entry_id"):
            with LogContext.bind(entry_id="p1"):
                pass


class TestSetup:

    def test_logger_namespace(self):
        assert get_logger("engines.payments").name == "invoice_kernel.engines.payments"

    def test_second_configure_ignored(self):
        first, _ = _stream_handler()
        second, _ = _stream_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)
        assert logging.getLogger("invoice_kernel").handlers == [first]

    def test_level_by_name(self):
        handler, buffer = _stream_handler()
        configure_logging(handler=handler, level="debug")
        get_logger("engines.catalog").debug("lines_resolved", extra={"resolved_count": 2})

        assert json.loads(buffer.getvalue())["resolved_count"] == 2

    def test_reset_allows_reconfiguration(self):
        first, _ = _stream_handler()
        configure_logging(handler=first)
        reset_logging()
        second, buffer = _stream_handler()
        configure_logging(handler=second)
        log.info("after_reset")

        assert json.loads(buffer.getvalue())["message"] == "after_reset"
        assert logging.getLogger("invoice_kernel").handlers == [second]

    def test_namespace_does_not_propagate(self):
        configure_logging(stream=StringIO())
        assert logging.getLogger("invoice_kernel").propagate is False
