import json
import logging
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

import config
from enums.currency import Currency
from exceptions.pricing import InvalidSelectionException, PricingTableException
from models.pricing import (
    PricingTableDTO,
    DesignSelectionDTO,
    PriceBreakdownDTO,
    PriceResultDTO,
    SelectionValidationDTO,
)
from services.currency import CurrencyConverter, to_decimal

logger = logging.getLogger(__name__)

# Selection axis -> attribute of PricingTableDTO holding its EUR prices
SELECTION_AXES: tuple[tuple[str, str], ...] = (
    ("size", "sizes"),
    ("material", "materials"),
    ("color", "colors"),
)


class PricingService:
    """Service for custom design price calculations."""

    @staticmethod
    def load_pricing_table(path: str | Path | None = None) -> PricingTableDTO:
        """
        Load the EUR pricing rule table.

        Args:
            path: JSON file to read, defaults to config.PRICING_TABLE_PATH

        Returns:
            PricingTableDTO (immutable)

        Raises:
            PricingTableException: If the file is missing, not JSON, or malformed
        """
        table_path = Path(path or config.PRICING_TABLE_PATH)
        try:
            raw = json.loads(table_path.read_text(encoding="utf-8"))
            table = PricingTableDTO.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"[Pricing] Failed to load pricing table {table_path}: {e}")
            raise PricingTableException(str(table_path), str(e)) from e

        if table.currency.upper() != Currency.EUR.value:
            raise PricingTableException(str(table_path), f"table currency must be EUR, got {table.currency}")
        return table

    @staticmethod
    def clamp_quantity(qty: int | None, min_qty: int, max_qty: int) -> int:
        """Clamp silently into [min_qty, max_qty]; missing quantity counts as 1."""
        value = 1 if qty is None else int(qty)
        return max(min_qty, min(max_qty, value))

    @staticmethod
    def validate_selections(selection: DesignSelectionDTO, table: PricingTableDTO) -> SelectionValidationDTO:
        """
        Check a selection before pricing is attempted.

        Rejects missing axes, unknown option ids and known-incompatible
        material/color combinations (table.incompatible). Every entry point
        must call this before calculate_price().

        Args:
            selection: Buyer's size/material/color/qty selection
            table: Pricing rule table

        Returns:
            SelectionValidationDTO with ok=False, a human-readable reason and
            the offending field when the selection is rejected
        """
        for axis, table_attr in SELECTION_AXES:
            value = getattr(selection, axis)
            if not value:
                return SelectionValidationDTO(ok=False, reason=f"{axis} is required", field=axis)
            if value not in getattr(table, table_attr):
                return SelectionValidationDTO(ok=False, reason=f"unknown {axis}: {value}", field=axis)

        blocked_colors = table.incompatible.get(selection.material, [])
        if selection.color in blocked_colors:
            return SelectionValidationDTO(
                ok=False,
                reason=f"{selection.material.capitalize()} is not available with "
                       f"{selection.color.capitalize()} color.",
                field="color"
            )

        return SelectionValidationDTO(ok=True)

    @staticmethod
    def calculate_price(
        selection: DesignSelectionDTO,
        target_currency: Currency,
        table: PricingTableDTO,
        converter: CurrencyConverter,
        qty_bounds: tuple[int, int] | None = None
    ) -> PriceResultDTO:
        """
        Price one custom design in the target currency.

        Algorithm:
        1. Look up base (size), material and color surcharges in EUR
        2. total_eur = base + material + color
        3. Convert once: major = round_half_up(total_eur * fx_rate, precision)
        4. minor = major * 10^precision, subtotal_minor = minor * qty

        Example with {base: 59, material: 5, color: 0}, qty 2, PLN @ 4.3:
            - total_eur = 64
            - unit_price = 275.20 PLN (27520 minor)
            - subtotal = 550.40 PLN (55040 minor)

        Pure function: no I/O, no hidden state.

        Args:
            selection: Buyer's selection (qty optional, defaults to 1)
            target_currency: Currency to price in
            table: Pricing rule table
            converter: Currency converter holding the FX configuration
            qty_bounds: Optional (min, max) replacing the table's qty bounds

        Returns:
            PriceResultDTO with EUR breakdown and target-currency figures

        Raises:
            InvalidSelectionException: If size, material or color is not in the table
        """
        for axis, table_attr in SELECTION_AXES:
            value = getattr(selection, axis)
            if value not in getattr(table, table_attr):
                raise InvalidSelectionException(f"unknown {axis}: {value}", field=axis)

        min_qty, max_qty = qty_bounds or (table.qty.min, table.qty.max)
        qty = PricingService.clamp_quantity(selection.qty, min_qty, max_qty)

        base = to_decimal(table.sizes[selection.size])
        material = to_decimal(table.materials[selection.material])
        color = to_decimal(table.colors[selection.color])
        total_eur = base + material + color

        unit_major = converter.eur_to_currency_major(total_eur, target_currency)
        unit_minor = converter.major_to_minor_units(unit_major, target_currency)
        subtotal_minor = unit_minor * qty

        return PriceResultDTO(
            currency=target_currency.value,
            unit_price=float(unit_major),
            unit_price_minor=unit_minor,
            subtotal=converter.minor_to_major(subtotal_minor, target_currency),
            subtotal_minor=subtotal_minor,
            qty=qty,
            fx_rate=converter.fx_rate(target_currency),
            breakdown=PriceBreakdownDTO(
                base_eur=float(base),
                material_eur=float(material),
                color_eur=float(color),
                total_eur=float(total_eur)
            )
        )

    @staticmethod
    def build_design_config(table: PricingTableDTO) -> dict:
        """
        Shape the rule table for the configurator UI.

        Example output:
            {
                "currency": "EUR",
                "qty": {"min": 1, "max": 10},
                "options": {
                    "size": [{"id": "21x21", "label": "21 × 21", "price_eur": 59.0}, ...],
                    "material": [{"id": "clear", "label": "clear", "surcharge_eur": 0.0}, ...],
                    "color": [{"id": "black", "label": "black", "surcharge_eur": 0.0}, ...]
                }
            }
        """
        return {
            "currency": table.currency,
            "qty": table.qty.model_dump(),
            "options": {
                "size": [
                    {"id": size_id, "label": size_id.replace("x", " × "), "price_eur": float(eur)}
                    for size_id, eur in table.sizes.items()
                ],
                "material": [
                    {"id": material_id, "label": material_id, "surcharge_eur": float(eur)}
                    for material_id, eur in table.materials.items()
                ],
                "color": [
                    {"id": color_id, "label": color_id, "surcharge_eur": float(eur)}
                    for color_id, eur in table.colors.items()
                ],
            },
            "incompatible": {material: list(colors) for material, colors in table.incompatible.items()},
        }

    @staticmethod
    def reconstruct_eur(major: float | Decimal, fx_rate: float) -> Decimal:
        """Approximate EUR amount behind a converted price (major / fx_rate)."""
        return to_decimal(major) / to_decimal(fx_rate)
