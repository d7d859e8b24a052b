"""
Typed exception hierarchy for the invoice kernel.

Only truly exceptional conditions raise. Problems with the data a user is
editing (unknown items, stock overruns, bad payment amounts) are reported
as structured ``FieldError`` values by ``invoice_engines.validation`` and
never surface as exceptions.

    InvoiceKernelError (base)
    |
    +-- CatalogError
    |   +-- MalformedCatalogRecordError
    |
    +-- PaymentError
    |   +-- PaymentEntryNotFoundError
    |   +-- UnknownPaymentMethodError
    |
    +-- OrderError
    |   +-- OrderSettledError
    |
    +-- ConfigError
    |   +-- ConfigValidationError
    |
    +-- DraftError
        +-- DraftDecodeError

Every class carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes so it survives logging and
serialization.
"""


class InvoiceKernelError(Exception):
    """Base exception for all invoice kernel errors."""

    code: str = "INVOICE_KERNEL_ERROR"


# Catalog exceptions


class CatalogError(InvoiceKernelError):
    """Base exception for catalog feed errors."""

    code: str = "CATALOG_ERROR"


class MalformedCatalogRecordError(CatalogError):
    """A catalog feed record could not be converted into a CatalogItem."""

    code: str = "MALFORMED_CATALOG_RECORD"

    def __init__(self, record_id: str | None, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Malformed catalog record {record_id!r}: {reason}")


# Payment exceptions


class PaymentError(InvoiceKernelError):
    """Base exception for payment row errors."""

    code: str = "PAYMENT_ERROR"


class PaymentEntryNotFoundError(PaymentError):
    """No current payment row carries the given identifier."""

    code: str = "PAYMENT_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Payment entry not found: {entry_id}")


class UnknownPaymentMethodError(PaymentError):
    """Payment method value is not one of the accepted methods."""

    code: str = "UNKNOWN_PAYMENT_METHOD"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unknown payment method: {method!r}")


# Order exceptions


class OrderError(InvoiceKernelError):
    """Base exception for order snapshot errors."""

    code: str = "ORDER_ERROR"


class OrderSettledError(OrderError):
    """The order already carries a full payment and cannot be edited."""

    code: str = "ORDER_SETTLED"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is fully paid and cannot be edited")


# Configuration exceptions


class ConfigError(InvoiceKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class ConfigValidationError(ConfigError):
    """A configuration value failed validation."""

    code: str = "CONFIG_VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")


# Draft exceptions


class DraftError(InvoiceKernelError):
    """Base exception for draft persistence errors."""

    code: str = "DRAFT_ERROR"


class DraftDecodeError(DraftError):
    """A stored draft could not be decoded."""

    code: str = "DRAFT_DECODE_FAILED"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot decode draft '{key}': {reason}")
