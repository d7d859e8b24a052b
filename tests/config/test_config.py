"""
Tests for the invoice_config package.

Loads the bundled configuration set and YAML files written to tmp_path.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from invoice_config import get_active_config, load_active_configuration
from invoice_config.loader import compute_checksum, load_configuration_set, parse_settings
from invoice_config.validator import validate_configuration
from invoice_kernel.domain.order import PaymentMethod, PaymentStatus
from invoice_kernel.domain.settings import DEFAULT_SETTINGS
from invoice_kernel.exceptions import ConfigValidationError


def _write_config(tmp_path, settings: dict, **top) -> Path:
    document = {"config_id": "test-set", "version": 1, "settings": settings, **top}
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(document))
    return path


class TestBundledConfiguration:

    def test_default_set_matches_builtin_defaults(self):
        assert get_active_config() == DEFAULT_SETTINGS

    def test_default_set_metadata(self):
        config = load_active_configuration()
        assert config.config_id == "retail-au-default"
        assert config.version == 1
        assert len(config.checksum) == 64

    def test_trace_logged(self, captured_logs):
        get_active_config()
        (trace,) = [r for r in captured_logs() if r["message"] == "INVOICE_CONFIG_TRACE"]
        assert trace["config_id"] == "retail-au-default"
        assert trace["payment_tolerance"] == "0.01"


class TestLoadFromFile:

    def test_overrides(self, tmp_path):
        path = _write_config(tmp_path, {
            "currency": "NZD",
            "currency_symbol": "NZ$",
            "payment_tolerance": "0.05",
            "clamp_invalid_quantity": False,
            "default_payment_method": "etfpos",
            "default_payment_status": "partial",
        })
        settings = get_active_config(path)
        assert settings.currency == "NZD"
        assert settings.payment_tolerance == Decimal("0.05")
        assert settings.clamp_invalid_quantity is False
        assert settings.default_payment_method is PaymentMethod.EFTPOS
        assert settings.default_payment_status is PaymentStatus.PARTIAL

    def test_absent_keys_take_defaults(self, tmp_path):
        settings = get_active_config(_write_config(tmp_path, {}))
        assert settings == DEFAULT_SETTINGS

    def test_float_tolerance_parsed_exactly(self, tmp_path):
        settings = get_active_config(_write_config(tmp_path, {"payment_tolerance": 0.1}))
        assert settings.payment_tolerance == Decimal("0.1")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_missing_config_id(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"settings": {}}))
        with pytest.raises(ConfigValidationError) as exc_info:
            load_configuration_set(path)
        assert exc_info.value.field == "config_id"

    def test_checksum_changes_with_content(self, tmp_path):
        a = load_configuration_set(_write_config(tmp_path, {"payment_tolerance": "0.01"}))
        b = load_configuration_set(_write_config(tmp_path, {"payment_tolerance": "0.02"}))
        assert a.checksum != b.checksum


class TestParseSettings:

    @pytest.mark.parametrize("data,field", [
        ({"payment_tolerance": "lots"}, "payment_tolerance"),
        ({"payment_tolerance": True}, "payment_tolerance"),
        ({"clamp_invalid_quantity": "yes"}, "clamp_invalid_quantity"),
        ({"require_items": 1}, "require_items"),
        ({"money_places": "2"}, "money_places"),
        ({"default_payment_method": "cheque"}, "default_payment_method"),
        ({"default_payment_status": "paid"}, "default_payment_status"),
    ])
    def test_bad_values(self, data, field):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_settings(data)
        assert exc_info.value.field == field

    def test_checksum_is_key_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestValidateConfiguration:

    @pytest.mark.parametrize("settings,top,field", [
        ({"payment_tolerance": "-0.01"}, {}, "payment_tolerance"),
        ({"payment_tolerance": "1.5"}, {}, "payment_tolerance"),
        ({"currency": "aud"}, {}, "currency"),
        ({"currency": "DOLLARS"}, {}, "currency"),
        ({"money_places": 6}, {}, "money_places"),
        ({}, {"version": 0}, "version"),
    ])
    def test_rejected(self, tmp_path, settings, top, field):
        config = load_configuration_set(_write_config(tmp_path, settings, **top))
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_configuration(config)
        assert exc_info.value.field == field

    def test_get_active_config_validates(self, tmp_path):
        with pytest.raises(ConfigValidationError):
            get_active_config(_write_config(tmp_path, {"payment_tolerance": "2"}))
