"""
Catalog Snapshot Resolver.

Pure functions with deterministic behavior. No I/O.

Resolves the operator's selection (catalog identifiers plus free-text
quantities) against an immutable catalog snapshot into priced,
quantity-bounded order lines.

Rules:
- A selected identifier missing from the snapshot resolves to a
  placeholder line with quantity 0; the validator reports it by id.
- Quantity text is parsed by its leading integer. Unparseable text or a
  value below 1 is clamped to 1 (forgiving entry policy, configurable).
- The maximum quantity for a finite-stock item is
  ``stock + quantity already committed to this order``, so an edit keeps
  quantities that were valid when the order was placed even if stock has
  since dropped. Services have no maximum.

Usage:
    from invoice_engines.catalog import build_catalog, resolve_lines

    catalog = build_catalog(product_feed)
    lines = resolve_lines(
        selected_ids=["tyre-1"],
        quantities={"tyre-1": "2"},
        catalog=catalog,
        original_quantities={"tyre-1": 1},
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from invoice_kernel.domain.order import CatalogItem, ItemKind
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import ZERO, parse_quantity
from invoice_kernel.exceptions import MalformedCatalogRecordError
from invoice_kernel.logging_config import get_logger
from invoice_engines.tracer import traced_engine

logger = get_logger("engines.catalog")


@dataclass(frozen=True)
class OrderLine:
    """
    A selected catalog item with its effective quantity.

    Attributes:
        item_id: Selected identifier
        item: Resolved catalog item, None when missing from the snapshot
        requested: Quantity text as entered
        quantity: Effective quantity used for pricing (0 for placeholders)
        original_quantity: Quantity committed to this order before the edit
        max_quantity: Grandfathered ceiling, None when unconstrained
    """

    item_id: str
    item: CatalogItem | None
    requested: str
    quantity: int
    original_quantity: int = 0
    max_quantity: int | None = None

    @property
    def is_resolved(self) -> bool:
        return self.item is not None

    @property
    def kind(self) -> ItemKind:
        return self.item.kind if self.item is not None else ItemKind.PRODUCT

    @property
    def name(self) -> str:
        return self.item.name if self.item is not None else self.item_id

    @property
    def line_total(self) -> Decimal:
        """Unit price times effective quantity, unrounded."""
        if self.item is None:
            return ZERO
        return self.item.price * self.quantity

    @property
    def exceeds_stock(self) -> bool:
        return self.max_quantity is not None and self.quantity > self.max_quantity


# ============================================================================
# Catalog snapshot construction
# ============================================================================


def build_catalog(
    records: Iterable[Mapping[str, Any]],
    kind: ItemKind = ItemKind.PRODUCT,
) -> dict[str, CatalogItem]:
    """Index a catalog feed by identifier.

    Malformed records are logged and left out of the snapshot, so any
    selection that references them resolves as "not found".
    """
    catalog: dict[str, CatalogItem] = {}
    for record in records:
        try:
            item = CatalogItem.from_record(record, kind)
        except MalformedCatalogRecordError as exc:
            logger.warning("catalog_record_skipped", extra={
                "record_id": exc.record_id,
                "reason": exc.reason,
                "kind": kind.value,
            })
            continue
        catalog[item.item_id] = item
    return catalog


def index_catalog(
    catalog: Mapping[str, CatalogItem] | Iterable[CatalogItem],
) -> Mapping[str, CatalogItem]:
    """Accept either an id-keyed mapping or a plain list of items."""
    if isinstance(catalog, Mapping):
        return catalog
    return {item.item_id: item for item in catalog}


def original_quantities_from_items(
    items: Iterable[Mapping[str, Any]],
) -> dict[str, int]:
    """Committed quantity per item id from an order feed's line items."""
    committed: dict[str, int] = {}
    for item in items:
        item_id = item.get("id") or item.get("_id")
        if not item_id:
            continue
        quantity = parse_quantity(item.get("quantity")) or 0
        committed[str(item_id)] = committed.get(str(item_id), 0) + quantity
    return committed


# ============================================================================
# Resolution
# ============================================================================


def effective_quantity(
    requested: object,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> int:
    """Quantity used for pricing and stock checks.

    Under the forgiving policy anything unparseable or below 1 counts as 1.
    Otherwise unparseable text counts as 0 and the validator reports it.
    """
    parsed = parse_quantity(requested)
    if settings.clamp_invalid_quantity:
        if parsed is None or parsed < 1:
            return 1
        return parsed
    return 0 if parsed is None else parsed


def max_allowed_quantity(
    item: CatalogItem,
    original_quantity: int = 0,
) -> int | None:
    """Grandfathered ceiling: current stock plus what this order already holds."""
    if item.stock is None:
        return None
    return item.stock + original_quantity


@traced_engine(
    "catalog_resolver", "1.0",
    fingerprint_fields=("selected_ids", "quantities", "original_quantities"),
)
def resolve_lines(
    selected_ids: Sequence[str],
    quantities: Mapping[str, str],
    catalog: Mapping[str, CatalogItem] | Iterable[CatalogItem],
    original_quantities: Mapping[str, int] | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> tuple[OrderLine, ...]:
    """
    Resolve selected identifiers to priced, quantity-bounded lines.

    Pure function - no side effects, never raises for missing items.

    Args:
        selected_ids: Selected catalog identifiers, in display order.
            Duplicates are ignored.
        quantities: Quantity text per identifier
        catalog: Catalog snapshot (mapping by id, or list of items)
        original_quantities: Quantity per id committed to the order before
            the edit began
        settings: Engine settings (quantity policy)

    Returns:
        One OrderLine per distinct selected identifier
    """
    items = index_catalog(catalog)
    committed = original_quantities or {}
    lines: list[OrderLine] = []
    seen: set[str] = set()

    for item_id in selected_ids:
        if item_id in seen:
            continue
        seen.add(item_id)

        requested = quantities.get(item_id)
        requested_text = "" if requested is None else str(requested)
        original_quantity = committed.get(item_id, 0)
        item = items.get(item_id)

        if item is None:
            logger.warning("catalog_item_not_found", extra={"item_id": item_id})
            lines.append(OrderLine(
                item_id=item_id,
                item=None,
                requested=requested_text,
                quantity=0,
                original_quantity=original_quantity,
            ))
            continue

        lines.append(OrderLine(
            item_id=item_id,
            item=item,
            requested=requested_text,
            quantity=effective_quantity(requested_text, settings),
            original_quantity=original_quantity,
            max_quantity=max_allowed_quantity(item, original_quantity),
        ))

    logger.debug("lines_resolved", extra={
        "selected_count": len(seen),
        "resolved_count": sum(1 for line in lines if line.is_resolved),
    })
    return tuple(lines)


def step_quantity(line: OrderLine, delta: int) -> int:
    """Apply a +/- stepper click to a line's quantity.

    Increments stop at the grandfathered maximum, decrements stop at 1.
    """
    current = max(line.quantity, 1)
    stepped = current + delta
    if line.max_quantity is not None and delta > 0:
        stepped = min(stepped, max(line.max_quantity, current))
    return max(stepped, 1)
