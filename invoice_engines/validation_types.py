"""
Validation domain types.

Pure frozen dataclasses and enums shared by the payment reconciliation
engine and the submission validator. Errors are values: engines return
them keyed by form field and never raise them.

Field keys follow the order form's contract: ``products``,
``paymentStatus<i>``, ``paymentAmount<i>``, ``paymentTotal`` and the
customer fields ``firstName``, ``lastName``, ``phone``, ``email``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Machine-readable error codes."""

    # Blocking data errors
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    # Quantity / stock errors
    QUANTITY_BELOW_MINIMUM = "QUANTITY_BELOW_MINIMUM"
    QUANTITY_EXCEEDS_STOCK = "QUANTITY_EXCEEDS_STOCK"
    NO_ITEMS_SELECTED = "NO_ITEMS_SELECTED"
    # Payment field errors
    PAYMENT_STATUS_REQUIRED = "PAYMENT_STATUS_REQUIRED"
    PAYMENT_AMOUNT_REQUIRED = "PAYMENT_AMOUNT_REQUIRED"
    PAYMENT_AMOUNT_INVALID = "PAYMENT_AMOUNT_INVALID"
    PAYMENT_EXCEEDS_BALANCE = "PAYMENT_EXCEEDS_BALANCE"
    # Aggregate total error
    PAYMENT_TOTAL_EXCEEDED = "PAYMENT_TOTAL_EXCEEDED"
    # Customer details
    CUSTOMER_FIELD_REQUIRED = "CUSTOMER_FIELD_REQUIRED"
    CUSTOMER_EMAIL_INVALID = "CUSTOMER_EMAIL_INVALID"


PRODUCTS_FIELD = "products"
PAYMENT_TOTAL_FIELD = "paymentTotal"


def payment_status_field(index: int) -> str:
    return f"paymentStatus{index}"


def payment_amount_field(index: int) -> str:
    return f"paymentAmount{index}"


@dataclass(frozen=True)
class FieldError:
    """One reported problem, attached to a form field."""

    field: str
    kind: ErrorKind
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ValidationResult:
    """
    Field-keyed validation verdict.

    At most one error per field; the submission is acceptable only when
    there are none.
    """

    errors: Mapping[str, FieldError] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def messages(self) -> dict[str, str]:
        """Field name to display message."""
        return {name: err.message for name, err in self.errors.items()}

    def codes(self) -> dict[str, str]:
        """Field name to error code."""
        return {name: err.code for name, err in self.errors.items()}

    def get(self, field_name: str) -> FieldError | None:
        return self.errors.get(field_name)

    @classmethod
    def from_errors(cls, errors: Iterable[FieldError]) -> ValidationResult:
        """Build a result; a later error on the same field replaces an earlier one."""
        keyed: dict[str, FieldError] = {}
        for err in errors:
            keyed[err.field] = err
        return cls(errors=keyed)
