"""
Invoice configuration set schema.

The human-authored, reviewable configuration artifact. YAML files in
``invoice_config/sets`` are parsed into these types by the loader and
checked by the validator before ``get_active_config`` hands the settings
to callers.

Key distinction:
  InvoiceConfigurationSet = source artifact (human-authored, versioned)
  EngineSettings          = runtime artifact consumed by the engines
"""

from __future__ import annotations

from dataclasses import dataclass

from invoice_kernel.domain.settings import EngineSettings


@dataclass(frozen=True)
class InvoiceConfigurationSet:
    """A versioned set of engine settings."""

    config_id: str
    version: int
    settings: EngineSettings
    description: str = ""
    checksum: str = ""
