"""Tests for the combined reconciliation view (invoice_engines.reconciliation)."""

from decimal import Decimal

from invoice_engines.catalog import resolve_lines
from invoice_engines.payments import on_status_change
from invoice_engines.reconciliation import reconcile


class TestReconcile:

    def test_totals_and_remaining(self, catalog, make_payment):
        lines = resolve_lines(["tyre-205", "fit"], {"tyre-205": "2", "fit": "2"}, catalog)
        previous = [make_payment("old", "40", "partial")]
        result = reconcile(lines, [make_payment("p1", "100")], previous, charges="10")

        assert result.subtotal == Decimal("240.00")
        assert result.grand_total == Decimal("250.00")
        assert result.previous_total == Decimal("40")
        assert result.current_total == Decimal("100")
        assert result.remaining == Decimal("110.00")
        assert result.is_valid
        assert not result.is_fully_paid

    def test_remaining_invariant(self, catalog, make_payment):
        lines = resolve_lines(["valve-std"], {"valve-std": "3"}, catalog)
        result = reconcile(lines, [make_payment("p1", "2.25"), make_payment("p2", "abc")])
        assert result.remaining == result.grand_total - result.previous_total - result.current_total

    def test_full_payment_settles_view(self, catalog, make_payment):
        lines = resolve_lines(["align"], {"align": "1"}, catalog)
        entry = make_payment("p1", "", None)
        paid = on_status_change(entry, "full", [entry], Decimal("60.00"))
        result = reconcile(lines, [paid])
        assert result.is_fully_paid
        assert result.is_valid

    def test_invalid_view_carries_errors(self, make_payment):
        result = reconcile([], [make_payment("p1", "5")])
        assert not result.is_valid
        assert set(result.validation.errors) == {"products", "paymentTotal"}

    def test_display_totals_rounded(self, make_payment):
        from invoice_kernel.domain.order import CatalogItem

        item = CatalogItem("x", "X", Decimal("3.335"), stock=10)
        lines = resolve_lines(["x"], {"x": "1"}, [item])
        totals = reconcile(lines, [make_payment("p1", "1")]).display_totals()
        assert totals["subtotal"] == Decimal("3.34")
        assert totals["remaining"] == Decimal("2.34")
        assert totals["charges"] == Decimal("0.00")
