"""
Tests for the catalog snapshot resolver (invoice_engines.catalog).

Covers:
- Line resolution, deduplication and not-found placeholders
- Forgiving quantity policy (clamp to 1) and the strict alternative
- Grandfathered stock ceilings on edits
- Stepper behaviour
- Catalog and order feed helpers
"""

from decimal import Decimal

import pytest

from invoice_engines.catalog import (
    OrderLine,
    build_catalog,
    effective_quantity,
    index_catalog,
    max_allowed_quantity,
    original_quantities_from_items,
    resolve_lines,
    step_quantity,
)
from invoice_kernel.domain.order import CatalogItem, ItemKind
from invoice_kernel.domain.settings import EngineSettings

STRICT = EngineSettings(clamp_invalid_quantity=False)


class TestResolveLines:
    """Selection to order lines."""

    def test_resolves_in_selection_order(self, catalog):
        lines = resolve_lines(["align", "tyre-205"], {"tyre-205": "2", "align": "1"}, catalog)
        assert [line.item_id for line in lines] == ["align", "tyre-205"]
        assert lines[1].quantity == 2
        assert lines[1].line_total == Decimal("200.00")

    def test_duplicates_ignored(self, catalog):
        lines = resolve_lines(["tyre-205", "tyre-205"], {"tyre-205": "1"}, catalog)
        assert len(lines) == 1

    def test_missing_item_is_placeholder(self, catalog):
        lines = resolve_lines(["ghost"], {"ghost": "3"}, catalog)
        (line,) = lines
        assert not line.is_resolved
        assert line.quantity == 0
        assert line.line_total == Decimal("0")
        assert line.name == "ghost"

    def test_missing_item_logged(self, catalog, captured_logs):
        resolve_lines(["ghost"], {}, catalog)
        logs = captured_logs()
        assert any(
            r["message"] == "catalog_item_not_found" and r["item_id"] == "ghost"
            for r in logs
        )

    def test_accepts_item_list(self, products):
        lines = resolve_lines(["tyre-205"], {"tyre-205": "1"}, list(products.values()))
        assert lines[0].is_resolved

    def test_requested_text_kept(self, catalog):
        (line,) = resolve_lines(["tyre-205"], {"tyre-205": "2 please"}, catalog)
        assert line.requested == "2 please"
        assert line.quantity == 2

    def test_no_selection(self, catalog):
        assert resolve_lines([], {}, catalog) == ()


class TestQuantityPolicy:
    """Unparseable or sub-1 quantities."""

    @pytest.mark.parametrize("text", ["", "abc", "0", "-3"])
    def test_clamped_to_one(self, text):
        assert effective_quantity(text) == 1

    def test_missing_quantity_clamped(self, catalog):
        (line,) = resolve_lines(["tyre-205"], {}, catalog)
        assert line.quantity == 1

    def test_strict_policy_keeps_value(self):
        assert effective_quantity("0", STRICT) == 0
        assert effective_quantity("-3", STRICT) == -3
        assert effective_quantity("abc", STRICT) == 0
        assert effective_quantity("4", STRICT) == 4


class TestGrandfathering:
    """Max quantity = current stock + quantity already on the order."""

    def test_new_order_max_is_stock(self, products):
        assert max_allowed_quantity(products["tyre-205"]) == 5

    def test_edit_adds_original_quantity(self, products):
        assert max_allowed_quantity(products["wheel-17"], 3) == 3

    def test_services_unconstrained(self, services):
        assert max_allowed_quantity(services["align"], 2) is None

    def test_zero_stock_item_keeps_committed_quantity(self, products):
        (line,) = resolve_lines(
            ["wheel-17"], {"wheel-17": "3"}, products, original_quantities={"wheel-17": 3}
        )
        assert line.max_quantity == 3
        assert not line.exceeds_stock

    def test_zero_stock_item_cannot_grow(self, products):
        (line,) = resolve_lines(
            ["wheel-17"], {"wheel-17": "4"}, products, original_quantities={"wheel-17": 3}
        )
        assert line.exceeds_stock
        assert line.original_quantity == 3

    def test_service_line_never_exceeds(self, services):
        (line,) = resolve_lines(["align"], {"align": "500"}, services)
        assert line.max_quantity is None
        assert not line.exceeds_stock


class TestStepQuantity:

    def _line(self, quantity, max_quantity):
        item = CatalogItem("t", "T", Decimal("1"), stock=max_quantity)
        return OrderLine("t", item, str(quantity), quantity, max_quantity=max_quantity)

    def test_increment(self):
        assert step_quantity(self._line(2, 5), +1) == 3

    def test_increment_capped_at_max(self):
        assert step_quantity(self._line(5, 5), +1) == 5

    def test_decrement_floored_at_one(self):
        assert step_quantity(self._line(1, 5), -1) == 1

    def test_unconstrained_increment(self, services):
        line = OrderLine("align", services["align"], "9", 9)
        assert step_quantity(line, +1) == 10

    def test_increment_does_not_shrink_existing_overrun(self):
        """A line already above max is not pulled down by a + click."""
        assert step_quantity(self._line(7, 5), +1) == 7


class TestCatalogHelpers:

    def test_build_catalog_skips_malformed(self, captured_logs):
        catalog = build_catalog([
            {"_id": "t1", "name": "Tyre", "price": "100", "stock": 2},
            {"_id": "t2", "name": "Broken", "price": "n/a", "stock": 1},
        ])
        assert list(catalog) == ["t1"]
        assert any(
            r["message"] == "catalog_record_skipped" and r["record_id"] == "t2"
            for r in captured_logs()
        )

    def test_negative_stock_record_resolves_as_not_found(self, captured_logs):
        catalog = build_catalog([{"_id": "t3", "name": "Returned", "price": "80", "stock": -2}])
        assert catalog == {}
        (line,) = resolve_lines(["t3"], {"t3": "1"}, catalog, {"t3": 1})
        assert not line.is_resolved
        assert any(r.get("reason") == "negative stock" for r in captured_logs())

    def test_build_service_catalog(self):
        catalog = build_catalog([{"id": "s1", "price": 20}], ItemKind.SERVICE)
        assert catalog["s1"].kind is ItemKind.SERVICE

    def test_index_catalog_mapping_passthrough(self, products):
        assert index_catalog(products) is products

    def test_original_quantities_from_items(self):
        committed = original_quantities_from_items([
            {"id": "t1", "quantity": 2},
            {"id": "t1", "quantity": "1"},
            {"_id": "t2", "quantity": 4},
            {"quantity": 9},
        ])
        assert committed == {"t1": 3, "t2": 4}
