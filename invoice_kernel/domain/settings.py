"""
Engine settings -- the policy knobs the pure engines are parameterised by.

Engines never read configuration themselves. ``invoice_config`` builds an
``EngineSettings`` from YAML and callers pass it in; every engine falls
back to ``DEFAULT_SETTINGS`` when none is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from invoice_kernel.domain.order import PaymentMethod, PaymentStatus


@dataclass(frozen=True)
class EngineSettings:
    """
    Attributes:
        currency: ISO 4217 code carried on submission payloads
        currency_symbol: Prefix used when amounts appear in messages
        money_places: Decimal places for displayed and derived amounts
        payment_tolerance: Absolute slack allowed when total payments are
            compared against the grand total
        clamp_invalid_quantity: Unparseable or < 1 quantities count as 1
        default_payment_method: Method of a freshly added payment row
        default_payment_status: Status of a freshly added payment row
        require_items: Reject submissions with no product or service line
    """

    currency: str = "AUD"
    currency_symbol: str = "$"
    money_places: int = 2
    payment_tolerance: Decimal = Decimal("0.01")
    clamp_invalid_quantity: bool = True
    default_payment_method: PaymentMethod = PaymentMethod.CASH
    default_payment_status: PaymentStatus = PaymentStatus.FULL
    require_items: bool = True


DEFAULT_SETTINGS = EngineSettings()
