"""
Configuration Loader (``invoice_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into an
``InvoiceConfigurationSet``. Build/test tooling: runtime callers go
through ``invoice_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or unparseable values  -> ``ConfigValidationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from invoice_config.schema import InvoiceConfigurationSet
from invoice_kernel.domain.order import PaymentMethod, PaymentStatus
from invoice_kernel.domain.settings import EngineSettings
from invoice_kernel.exceptions import ConfigValidationError, UnknownPaymentMethodError

_DEFAULTS = EngineSettings()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(field: str, value: Any) -> Decimal:
    """Parse a Decimal from YAML; floats go through ``str``."""
    if isinstance(value, bool):
        raise ConfigValidationError(field, f"expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigValidationError(field, f"expected a number, got {value!r}") from None


def parse_bool(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigValidationError(field, f"expected true/false, got {value!r}")
    return value


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """Parse ``EngineSettings``; absent keys take the built-in defaults."""
    try:
        method = PaymentMethod.parse(
            data.get("default_payment_method", _DEFAULTS.default_payment_method)
        )
    except UnknownPaymentMethodError as exc:
        raise ConfigValidationError("default_payment_method", str(exc)) from exc

    status = PaymentStatus.parse(
        data.get("default_payment_status", _DEFAULTS.default_payment_status)
    )
    if status is None:
        raise ConfigValidationError(
            "default_payment_status",
            f"expected 'partial' or 'full', got {data.get('default_payment_status')!r}",
        )

    places = data.get("money_places", _DEFAULTS.money_places)
    if isinstance(places, bool) or not isinstance(places, int):
        raise ConfigValidationError("money_places", f"expected an integer, got {places!r}")

    return EngineSettings(
        currency=str(data.get("currency", _DEFAULTS.currency)),
        currency_symbol=str(data.get("currency_symbol", _DEFAULTS.currency_symbol)),
        money_places=places,
        payment_tolerance=parse_decimal(
            "payment_tolerance",
            data.get("payment_tolerance", _DEFAULTS.payment_tolerance),
        ),
        clamp_invalid_quantity=parse_bool(
            "clamp_invalid_quantity",
            data.get("clamp_invalid_quantity", _DEFAULTS.clamp_invalid_quantity),
        ),
        default_payment_method=method,
        default_payment_status=status,
        require_items=parse_bool(
            "require_items",
            data.get("require_items", _DEFAULTS.require_items),
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed configuration document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_configuration_set(path: Path) -> InvoiceConfigurationSet:
    """Load and parse one configuration set file."""
    data = load_yaml_file(path)
    if "config_id" not in data:
        raise ConfigValidationError("config_id", f"missing in {path}")
    return InvoiceConfigurationSet(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        description=str(data.get("description", "")),
        settings=parse_settings(data.get("settings") or {}),
        checksum=compute_checksum(data),
    )
