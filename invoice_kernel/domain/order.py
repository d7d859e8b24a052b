"""
Order domain objects -- catalog items, payment entries, customer details.

Immutable value objects populated from the external catalog and order
feeds. The engines only ever read these; every edit produces a new
instance via ``dataclasses.replace``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from invoice_kernel.domain.values import parse_amount, parse_quantity
from invoice_kernel.exceptions import (
    MalformedCatalogRecordError,
    UnknownPaymentMethodError,
)


class ItemKind(str, Enum):
    """What a catalog item is sold as."""

    PRODUCT = "product"
    SERVICE = "service"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    CARD = "creditcard"  # Credit card / debit card
    EFTPOS = "eftpos"
    AFTERPAY = "afterpay"  # Buy now, pay later
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | PaymentMethod, *, strict: bool = True) -> PaymentMethod:
        """Parse a stored or submitted method value.

        With ``strict=False`` unknown values (e.g. "Online" on historical
        payments) map to OTHER instead of raising.
        """
        if isinstance(value, PaymentMethod):
            return value
        normalized = str(value or "").strip().lower()
        normalized = _METHOD_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            if strict:
                raise UnknownPaymentMethodError(value) from None
            return cls.OTHER


_METHOD_ALIASES = {
    "etfpos": "eftpos",
    "card": "creditcard",
    "credit_card": "creditcard",
    "debitcard": "creditcard",
}


class PaymentStatus(str, Enum):
    """Whether a payment settles the order or only part of it."""

    PARTIAL = "partial"
    FULL = "full"

    @classmethod
    def parse(cls, value: str | PaymentStatus | None) -> PaymentStatus | None:
        """Parse a status case-insensitively; empty or unknown is None."""
        if value is None or isinstance(value, PaymentStatus):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class CatalogItem:
    """
    A purchasable unit (product or service) from a catalog snapshot.

    Attributes:
        item_id: Opaque catalog identifier
        name: Display name
        price: Unit price, non-negative
        stock: Available stock; None means unconstrained (services)
        sku: Stock keeping unit, if any
        kind: Product or service
    """

    item_id: str
    name: str
    price: Decimal
    stock: int | None = None
    sku: str = ""
    kind: ItemKind = ItemKind.PRODUCT

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))
        if self.price < 0:
            raise ValueError("price must be non-negative")
        if self.stock is not None and self.stock < 0:
            raise ValueError("stock must be non-negative")

    @property
    def is_unconstrained(self) -> bool:
        return self.stock is None

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        kind: ItemKind = ItemKind.PRODUCT,
    ) -> CatalogItem:
        """Build an item from a catalog feed record.

        Raises:
            MalformedCatalogRecordError: missing id, missing or negative
                price, or missing, non-integer or negative stock.
        """
        item_id = record.get("id") or record.get("_id")
        if not item_id:
            raise MalformedCatalogRecordError(None, "missing id")
        item_id = str(item_id)

        price = parse_amount(record.get("price"))
        if price is None:
            raise MalformedCatalogRecordError(item_id, "missing or non-numeric price")
        if price < 0:
            raise MalformedCatalogRecordError(item_id, "negative price")

        stock: int | None = None
        if kind is ItemKind.PRODUCT:
            raw_stock = record.get("stock")
            if isinstance(raw_stock, float) and raw_stock.is_integer():
                raw_stock = int(raw_stock)
            stock = parse_quantity(raw_stock) if isinstance(raw_stock, (int, str)) else None
            if stock is None:
                raise MalformedCatalogRecordError(item_id, "missing or non-integer stock")
            if stock < 0:
                raise MalformedCatalogRecordError(item_id, "negative stock")

        return cls(
            item_id=item_id,
            name=str(record.get("name") or item_id),
            price=price,
            stock=stock,
            sku=str(record.get("sku") or ""),
            kind=kind,
        )


@dataclass(frozen=True)
class PaymentEntry:
    """
    One payment against an order.

    ``amount`` holds the raw text the operator typed ("" while unset) so a
    half-typed or non-numeric value stays editable. Previous payments are
    historical records loaded with the order; current payments are the
    rows being edited.
    """

    entry_id: str
    method: PaymentMethod = PaymentMethod.CASH
    status: PaymentStatus | None = PaymentStatus.FULL
    amount: str = ""
    note: str = ""

    @property
    def parsed_amount(self) -> Decimal | None:
        return parse_amount(self.amount)

    @classmethod
    def from_record(cls, record: Mapping[str, Any], entry_id: str) -> PaymentEntry:
        """Build a previous payment from an order feed record."""
        raw_amount = record.get("amount")
        status = record.get("status") or record.get("paymentStatus")
        return cls(
            entry_id=entry_id,
            method=PaymentMethod.parse(record.get("method") or "", strict=False),
            status=PaymentStatus.parse(status),
            amount="" if raw_amount is None else str(raw_amount),
            note=str(record.get("note") or ""),
        )


@dataclass(frozen=True)
class CustomerDetails:
    """Customer contact details entered alongside an invoice."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()
