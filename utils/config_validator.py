"""
Configuration Validation Module

Validates critical configuration values at startup to fail-fast
with clear error messages instead of runtime failures.
"""

import sys

from enums.currency import Currency
from exceptions.pricing import PricingTableException
from models.currency import FxConfig
from services.pricing import PricingService


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_pricing_table(path: str) -> None:
    """
    Validate the EUR pricing rule table.

    Raises:
        ConfigValidationError: If the table is unreadable, has no options on
            some axis, or has inverted/non-positive quantity bounds
    """
    try:
        table = PricingService.load_pricing_table(path)
    except PricingTableException as e:
        raise ConfigValidationError(
            f"{e.message}\n"
            "Set PRICING_TABLE_PATH in .env to a readable JSON pricing table."
        ) from e

    for axis, options in (("sizes", table.sizes), ("materials", table.materials), ("colors", table.colors)):
        if not options:
            raise ConfigValidationError(f"Pricing table {path} defines no {axis}")
        negative = [option for option, eur in options.items() if eur < 0]
        if negative:
            raise ConfigValidationError(f"Pricing table {path} has negative {axis} prices: {', '.join(negative)}")

    if table.qty.min < 1 or table.qty.max < table.qty.min:
        raise ConfigValidationError(
            f"Pricing table {path} has invalid qty bounds: min={table.qty.min}, max={table.qty.max}\n"
            "Expected: 1 <= min <= max"
        )


def validate_fx_config(fx_config: FxConfig) -> None:
    """
    Validate that every supported currency resolves to a positive rate.

    Raises:
        ConfigValidationError: If a default rate is missing or not positive
    """
    for currency in Currency:
        rate = fx_config.rate_for(currency)
        if rate is None or rate <= 0:
            raise ConfigValidationError(
                f"FX rate for {currency.value} must be positive (got: {rate})\n"
                f"Add to .env: FX_EUR_{currency.value}=<rate>"
            )


def validate_design_config(config_module) -> None:
    """
    Validate design-your-own catalog anchors.

    Raises:
        ConfigValidationError: If the product handle or variant title is empty
    """
    for name in ("DESIGN_PRODUCT_HANDLE", "DESIGN_VARIANT_TITLE"):
        value = getattr(config_module, name, None)
        if not value or not str(value).strip():
            raise ConfigValidationError(f"{name} is required but not set!")

    min_qty = PricingService.load_pricing_table(config_module.PRICING_TABLE_PATH).qty.min
    if config_module.DESIGN_ADD_MAX_QTY < min_qty:
        raise ConfigValidationError(
            f"DESIGN_ADD_MAX_QTY ({config_module.DESIGN_ADD_MAX_QTY}) is below the pricing table minimum ({min_qty})"
        )


def validate_startup_config(config_module) -> None:
    """
    Validate all critical configuration at startup.

    Args:
        config_module: The config module to validate

    Raises:
        ConfigValidationError: If any validation fails
    """
    validate_pricing_table(config_module.PRICING_TABLE_PATH)
    validate_fx_config(config_module.FX_CONFIG)
    validate_design_config(config_module)


def validate_or_exit(config_module) -> None:
    """
    Validate configuration and exit with error code 1 if validation fails.

    This is the main entry point for startup validation.
    """
    try:
        validate_startup_config(config_module)
    except ConfigValidationError as e:
        print(f"\n ERROR: Configuration Validation Failed\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nStore startup aborted. Please fix configuration and try again.\n", file=sys.stderr)
        sys.exit(1)
