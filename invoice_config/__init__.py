"""
invoice_config -- single public entrypoint for invoice engine configuration.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_active_config()``. Engines never read configuration files or
    environment variables; callers pass the returned ``EngineSettings``
    into them.

Architecture position:
    Configuration -- YAML-driven settings, validated on load.
    Sits above ``invoice_kernel`` and below ``invoice_services``. The
    kernel and engines MUST NEVER import from ``invoice_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ConfigValidationError`` -- a value failed parsing or validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVOICE_CONFIG_TRACE`` log entry with the config_id, version and
    checksum, tying each validated submission back to the settings
    (tolerance, quantity policy) that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from invoice_config.loader import load_configuration_set
from invoice_config.schema import InvoiceConfigurationSet
from invoice_config.validator import validate_configuration
from invoice_kernel.domain.settings import EngineSettings

_logger = logging.getLogger("invoice_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def load_active_configuration(config_path: Path | None = None) -> InvoiceConfigurationSet:
    """Load and validate a configuration set (default: the bundled set)."""
    path = config_path or _DEFAULT_CONFIG_PATH
    config = load_configuration_set(path)
    validate_configuration(config)

    _logger.info(
        "INVOICE_CONFIG_TRACE",
        extra={
            "trace_type": "INVOICE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "payment_tolerance": str(config.settings.payment_tolerance),
            "clamp_invalid_quantity": config.settings.clamp_invalid_quantity,
        },
    )
    return config


def get_active_config(config_path: Path | None = None) -> EngineSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML configuration set to load; the bundled
            ``sets/default.yaml`` when omitted.

    Returns:
        Validated, frozen ``EngineSettings``.

    Raises:
        FileNotFoundError: the configuration file does not exist.
        ConfigValidationError: a value failed parsing or validation.
    """
    return load_active_configuration(config_path).settings


__all__ = [
    "InvoiceConfigurationSet",
    "get_active_config",
    "load_active_configuration",
]
