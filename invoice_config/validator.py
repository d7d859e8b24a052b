"""
Configuration Validator (``invoice_config.validator``).

Checks a parsed ``InvoiceConfigurationSet`` before it is handed out.
Tolerance and quantity-clamp policy come from configuration; the
tolerance is bounded here.
"""

from __future__ import annotations

from decimal import Decimal

from invoice_config.schema import InvoiceConfigurationSet
from invoice_kernel.exceptions import ConfigValidationError

# A tolerance above one whole currency unit stops being rounding slack
_MAX_TOLERANCE = Decimal("1")


def validate_configuration(config: InvoiceConfigurationSet) -> None:
    """
    Raise ConfigValidationError on the first invalid value.

    Raises:
        ConfigValidationError: with the offending field name.
    """
    settings = config.settings

    if config.version < 1:
        raise ConfigValidationError("version", "must be >= 1")

    code = settings.currency
    if len(code) != 3 or not code.isalpha() or not code.isupper():
        raise ConfigValidationError("currency", f"expected an ISO 4217 code, got {code!r}")

    if not 0 <= settings.money_places <= 4:
        raise ConfigValidationError("money_places", "must be between 0 and 4")

    tolerance = settings.payment_tolerance
    if not tolerance.is_finite() or tolerance < 0:
        raise ConfigValidationError("payment_tolerance", "must be a non-negative number")
    if tolerance > _MAX_TOLERANCE:
        raise ConfigValidationError(
            "payment_tolerance", f"must not exceed {_MAX_TOLERANCE}"
        )
