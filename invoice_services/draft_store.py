"""
invoice_services.draft_store -- Client-side draft persistence.

Responsibility:
    Remember an in-progress invoice (selections, quantities, payment rows,
    customer details) across reloads. The store is injected into
    ``InvoiceEditor``; the engines never see it.

Architecture position:
    Services -- imperative shell. Depends on invoice_kernel only.

Failure modes:
    - DraftDecodeError when a stored value is not a valid draft document.
      Callers typically discard the draft and start fresh.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from invoice_kernel.domain.order import CustomerDetails, PaymentEntry, PaymentMethod, PaymentStatus
from invoice_kernel.exceptions import DraftDecodeError
from invoice_kernel.logging_config import get_logger

logger = get_logger("services.draft_store")

DRAFT_FORMAT_VERSION = 1


class DraftStore(Protocol):
    """Minimal key-value store for serialized drafts."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryDraftStore:
    """Dict-backed DraftStore, used in tests and single-process tools."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class InvoiceDraft:
    """Everything needed to rebuild an editor's state."""

    selected_products: tuple[str, ...] = ()
    product_quantities: Mapping[str, str] = field(default_factory=dict)
    selected_services: tuple[str, ...] = ()
    service_quantities: Mapping[str, str] = field(default_factory=dict)
    payments: tuple[PaymentEntry, ...] = ()
    customer: CustomerDetails | None = None


def draft_key(order_id: str | None) -> str:
    """Store key for an order's draft; new invoices share one slot."""
    return f"invoice-draft:{order_id or 'new'}"


def encode_draft(draft: InvoiceDraft) -> str:
    """Serialize a draft to JSON."""
    document: dict[str, Any] = {
        "version": DRAFT_FORMAT_VERSION,
        "selected_products": list(draft.selected_products),
        "product_quantities": dict(draft.product_quantities),
        "selected_services": list(draft.selected_services),
        "service_quantities": dict(draft.service_quantities),
        "payments": [
            {
                "entry_id": p.entry_id,
                "method": p.method.value,
                "status": p.status.value if p.status is not None else None,
                "amount": p.amount,
                "note": p.note,
            }
            for p in draft.payments
        ],
        "customer": asdict(draft.customer) if draft.customer is not None else None,
    }
    return json.dumps(document, sort_keys=True)


def _decode_payments(key: str, raw: Sequence[Mapping[str, Any]]) -> tuple[PaymentEntry, ...]:
    payments: list[PaymentEntry] = []
    for row in raw:
        if not row.get("entry_id"):
            raise DraftDecodeError(key, "payment row without entry_id")
        payments.append(PaymentEntry(
            entry_id=str(row["entry_id"]),
            method=PaymentMethod.parse(row.get("method") or "", strict=False),
            status=PaymentStatus.parse(row.get("status")),
            amount=str(row.get("amount") or ""),
            note=str(row.get("note") or ""),
        ))
    return tuple(payments)


def decode_draft(key: str, text: str) -> InvoiceDraft:
    """
    Parse a stored draft.

    Raises:
        DraftDecodeError: invalid JSON, unknown format version or bad shape.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DraftDecodeError(key, f"invalid JSON: {exc.msg}") from exc

    if not isinstance(document, dict):
        raise DraftDecodeError(key, "document is not an object")
    if document.get("version") != DRAFT_FORMAT_VERSION:
        raise DraftDecodeError(key, f"unsupported version {document.get('version')!r}")

    try:
        customer_data = document.get("customer")
        customer = CustomerDetails(**customer_data) if customer_data else None
        return InvoiceDraft(
            selected_products=tuple(str(i) for i in document.get("selected_products", [])),
            product_quantities={
                str(k): str(v) for k, v in document.get("product_quantities", {}).items()
            },
            selected_services=tuple(str(i) for i in document.get("selected_services", [])),
            service_quantities={
                str(k): str(v) for k, v in document.get("service_quantities", {}).items()
            },
            payments=_decode_payments(key, document.get("payments", [])),
            customer=customer,
        )
    except (AttributeError, TypeError) as exc:
        raise DraftDecodeError(key, f"bad shape: {exc}") from exc
