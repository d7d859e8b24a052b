"""
Order submission payload.

Pure functions with deterministic behavior. No I/O.

Builds the body handed to the external order create/update call once a
submission has validated:

    {
        "items": [{"id": ..., "quantity": ...}],        # products
        "serviceItems": [{"id": ..., "quantity": ...}],
        "subtotal": Decimal,
        "total": Decimal,
        "payment": {"method", "amount", "status", "note", "currency"},
        "additionalPayments": [...],                     # rows 2..n
        "customer": {"name", "phone", "email"},          # when given
    }

On edits ``items`` is sent only when the product selection or any
quantity differs from the order as loaded.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from invoice_kernel.domain.order import CustomerDetails, ItemKind, PaymentEntry
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import round_money
from invoice_kernel.logging_config import get_logger
from invoice_engines.catalog import OrderLine
from invoice_engines.pricing import PriceSummary

logger = get_logger("engines.submission")


def items_changed(
    original_quantities: Mapping[str, int],
    lines: Sequence[OrderLine],
) -> bool:
    """True when the product lines differ from the order as loaded."""
    products = [line for line in lines if line.kind is ItemKind.PRODUCT]
    if sorted(original_quantities) != sorted(line.item_id for line in products):
        return True
    return any(
        line.quantity != original_quantities[line.item_id] for line in products
    )


def _line_items(lines: Sequence[OrderLine], kind: ItemKind) -> list[dict[str, Any]]:
    return [
        {"id": line.item_id, "quantity": line.quantity}
        for line in lines
        if line.kind is kind
    ]


def _payment_body(entry: PaymentEntry, settings: EngineSettings) -> dict[str, Any]:
    amount = entry.parsed_amount
    if amount is None:
        raise ValueError(f"payment {entry.entry_id} has no valid amount: {entry.amount!r}")
    return {
        "method": entry.method.value,
        "amount": round_money(amount, settings.money_places),
        "status": entry.status.value if entry.status is not None else None,
        "note": entry.note,
        "currency": settings.currency,
    }


def build_order_payload(
    lines: Sequence[OrderLine],
    pricing: PriceSummary,
    current_payments: Sequence[PaymentEntry],
    original_quantities: Mapping[str, int] | None = None,
    customer: CustomerDetails | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> dict[str, Any]:
    """
    Build the create/update body for a validated order.

    Args:
        lines: Resolved lines (placeholders must already be rejected)
        pricing: Totals for ``lines``
        current_payments: Rows being submitted; the first is primary
        original_quantities: Committed quantities of the order being
            edited, or None when creating a new order
        customer: Contact details to include
        settings: Engine settings (currency, precision)

    Raises:
        ValueError: No payment rows, an unresolved line, or a payment
            row without a valid amount
    """
    if not current_payments:
        raise ValueError("at least one payment row is required")
    unresolved = [line.item_id for line in lines if not line.is_resolved]
    if unresolved:
        raise ValueError(f"cannot submit unresolved items: {unresolved}")

    places = settings.money_places
    payload: dict[str, Any] = {
        "serviceItems": _line_items(lines, ItemKind.SERVICE),
        "subtotal": round_money(pricing.subtotal, places),
        "total": round_money(pricing.grand_total, places),
        "payment": _payment_body(current_payments[0], settings),
        "additionalPayments": [
            _payment_body(entry, settings) for entry in current_payments[1:]
        ],
    }

    if original_quantities is None or items_changed(original_quantities, lines):
        payload["items"] = _line_items(lines, ItemKind.PRODUCT)

    if customer is not None:
        payload["customer"] = {
            "name": customer.full_name,
            "phone": customer.phone.strip(),
            "email": customer.email.strip(),
        }

    logger.debug("order_payload_built", extra={
        "includes_items": "items" in payload,
        "service_item_count": len(payload["serviceItems"]),
        "payment_count": len(current_payments),
        "total": str(payload["total"]),
    })
    return payload


def payload_amounts(payload: Mapping[str, Any]) -> Decimal:
    """Sum of every payment amount carried by a payload."""
    total = Decimal(payload["payment"]["amount"])
    for extra in payload.get("additionalPayments", ()):
        total += Decimal(extra["amount"])
    return total
