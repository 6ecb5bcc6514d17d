"""
Unit Tests: config_validator

Startup validation of the pricing table, FX rates and design anchors.
"""

import json
from types import SimpleNamespace

import pytest

import config
from models.currency import FxConfig
from utils.config_validator import (
    ConfigValidationError,
    validate_pricing_table,
    validate_fx_config,
    validate_design_config,
    validate_or_exit,
)


def write_table(tmp_path, **overrides):
    table = {
        "currency": "EUR",
        "sizes": {"21x21": 59},
        "materials": {"clear": 0},
        "colors": {"black": 0},
        "qty": {"min": 1, "max": 10},
    }
    table.update(overrides)
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps(table))
    return str(path)


def test_shipped_configuration_is_valid():
    validate_or_exit(config)


def test_valid_table(tmp_path):
    validate_pricing_table(write_table(tmp_path))


def test_missing_table(tmp_path):
    with pytest.raises(ConfigValidationError, match="PRICING_TABLE_PATH"):
        validate_pricing_table(str(tmp_path / "missing.json"))


@pytest.mark.parametrize("overrides", [
    {"sizes": {}},
    {"materials": {"clear": -1}},
    {"qty": {"min": 0, "max": 10}},
    {"qty": {"min": 5, "max": 2}},
    {"currency": "USD"},
])
def test_invalid_tables(tmp_path, overrides):
    with pytest.raises(ConfigValidationError):
        validate_pricing_table(write_table(tmp_path, **overrides))


def test_fx_config_defaults_are_valid():
    validate_fx_config(FxConfig())


def test_design_anchor_required(tmp_path):
    config_module = SimpleNamespace(
        DESIGN_PRODUCT_HANDLE=" ", DESIGN_VARIANT_TITLE="Custom",
        PRICING_TABLE_PATH=write_table(tmp_path), DESIGN_ADD_MAX_QTY=99
    )

    with pytest.raises(ConfigValidationError, match="DESIGN_PRODUCT_HANDLE"):
        validate_design_config(config_module)


def test_add_max_below_table_min(tmp_path):
    config_module = SimpleNamespace(
        DESIGN_PRODUCT_HANDLE="design-your-own", DESIGN_VARIANT_TITLE="Custom",
        PRICING_TABLE_PATH=write_table(tmp_path, qty={"min": 5, "max": 10}), DESIGN_ADD_MAX_QTY=3
    )

    with pytest.raises(ConfigValidationError, match="DESIGN_ADD_MAX_QTY"):
        validate_design_config(config_module)


def test_or_exit_exits(tmp_path):
    config_module = SimpleNamespace(PRICING_TABLE_PATH=str(tmp_path / "missing.json"))

    with pytest.raises(SystemExit) as exc_info:
        validate_or_exit(config_module)

    assert exc_info.value.code == 1
