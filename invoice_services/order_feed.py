"""
invoice_services.order_feed -- Order snapshots loaded from the order feed.

Responsibility:
    Convert an order record from the external order service into an
    immutable ``OrderSnapshot``: committed product quantities (for stock
    grandfathering), service lines at the prices they were sold at,
    previous payments, charges and customer details.

Architecture position:
    Services -- imperative shell. Depends on engines + kernel.

Invariants enforced:
    - An order with any previous ``full`` payment is settled; it is left
      out of ``editable_orders`` and ``InvoiceEditor`` refuses to open it.

Usage:
    from invoice_services.order_feed import OrderSnapshot, editable_orders

    snapshot = OrderSnapshot.from_record(order_record)
    open_orders = editable_orders(order_records)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from invoice_engines.catalog import original_quantities_from_items
from invoice_engines.payments import is_order_settled
from invoice_engines.pricing import normalize_charges
from invoice_kernel.domain.order import (
    CatalogItem,
    CustomerDetails,
    ItemKind,
    PaymentEntry,
)
from invoice_kernel.domain.values import ZERO
from invoice_kernel.exceptions import MalformedCatalogRecordError
from invoice_kernel.logging_config import get_logger

logger = get_logger("services.order_feed")


@dataclass(frozen=True)
class OrderSnapshot:
    """
    An existing order as loaded for editing.

    Attributes:
        order_id: Order identifier
        original_quantities: Committed quantity per product id
        service_items: Services on the order, priced as sold
        service_quantities: Committed quantity per service id
        previous_payments: Payments already recorded against the order
        charges: Opaque charges added to the subtotal
        customer: Contact details on the order, if any
    """

    order_id: str
    original_quantities: Mapping[str, int] = field(default_factory=dict)
    service_items: tuple[CatalogItem, ...] = ()
    service_quantities: Mapping[str, int] = field(default_factory=dict)
    previous_payments: tuple[PaymentEntry, ...] = ()
    charges: Decimal = ZERO
    customer: CustomerDetails | None = None

    @property
    def is_settled(self) -> bool:
        return is_order_settled(self.previous_payments)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> OrderSnapshot:
        """Build a snapshot from an order feed record.

        Previous payments are the primary ``payment`` followed by
        ``additionalPayments``; each gets a stable id derived from the
        order id and its position.
        """
        order_id = str(record.get("id") or record.get("_id") or "")
        if not order_id:
            raise ValueError("order record has no id")

        service_items, service_quantities = _services_from_records(
            order_id, record.get("serviceItems") or ()
        )
        return cls(
            order_id=order_id,
            original_quantities=original_quantities_from_items(record.get("items") or ()),
            service_items=service_items,
            service_quantities=service_quantities,
            previous_payments=_previous_payments(order_id, record),
            charges=normalize_charges(record.get("charges")),
            customer=_customer_from_record(record.get("customer")),
        )


def _services_from_records(
    order_id: str,
    records: Iterable[Mapping[str, Any]],
) -> tuple[tuple[CatalogItem, ...], dict[str, int]]:
    records = list(records)
    items: list[CatalogItem] = []
    for record in records:
        try:
            items.append(CatalogItem.from_record(record, ItemKind.SERVICE))
        except MalformedCatalogRecordError as exc:
            logger.warning("order_service_item_skipped", extra={
                "order_id": order_id,
                "record_id": exc.record_id,
                "reason": exc.reason,
            })
    known = {item.item_id for item in items}
    quantities = {
        item_id: quantity
        for item_id, quantity in original_quantities_from_items(records).items()
        if item_id in known
    }
    return tuple(items), quantities


def _previous_payments(order_id: str, record: Mapping[str, Any]) -> tuple[PaymentEntry, ...]:
    raw: list[Mapping[str, Any]] = []
    primary = record.get("payment")
    if isinstance(primary, Mapping):
        raw.append(primary)
    raw.extend(p for p in record.get("additionalPayments") or () if isinstance(p, Mapping))
    return tuple(
        PaymentEntry.from_record(p, entry_id=f"{order_id}-payment-{i}")
        for i, p in enumerate(raw)
    )


def _customer_from_record(data: Mapping[str, Any] | None) -> CustomerDetails | None:
    if not data:
        return None
    first, _, last = str(data.get("name") or "").strip().partition(" ")
    return CustomerDetails(
        first_name=first,
        last_name=last.strip(),
        phone=str(data.get("phone") or ""),
        email=str(data.get("email") or ""),
    )


def editable_orders(records: Sequence[Mapping[str, Any]]) -> list[OrderSnapshot]:
    """Snapshots of the orders that can still be edited (not settled)."""
    snapshots = [OrderSnapshot.from_record(r) for r in records]
    editable = [s for s in snapshots if not s.is_settled]
    logger.debug("editable_orders_filtered", extra={
        "order_count": len(snapshots),
        "editable_count": len(editable),
    })
    return editable
