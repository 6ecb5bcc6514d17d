"""
EUR -> currency conversion for custom design prices.

All rounding happens here, once, with Decimal ROUND_HALF_UP at the
currency's precision. Callers must not round the returned values again.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from enums.currency import Currency
from models.currency import FxConfig

logger = logging.getLogger(__name__)

CURRENCY_PRECISION: dict[Currency, int] = {
    Currency.EUR: 2,
    Currency.USD: 2,
    Currency.GBP: 2,
    Currency.PLN: 2,
}


def to_decimal(value: object) -> Decimal:
    """Convert via str() so float artifacts (69 * 1.08 = 74.52000000000001) never leak in."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, AttributeError, ValueError) as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e


class CurrencyConverter:
    """Converts EUR amounts using the FX rates of one FxConfig."""

    def __init__(self, fx_config: FxConfig | None = None):
        self._fx_config = fx_config or FxConfig()

    @property
    def fx_config(self) -> FxConfig:
        return self._fx_config

    @staticmethod
    def normalize_currency_code(code: object) -> Currency | None:
        """
        Resolve a 3-letter code (any case, surrounding whitespace allowed).

        Never raises: callers treat None as "currency unresolved, keep the
        prior currency".
        """
        if not isinstance(code, str):
            return None
        normalized = code.strip().upper()
        if len(normalized) != 3:
            return None
        try:
            return Currency(normalized)
        except ValueError:
            return None

    @staticmethod
    def precision(currency: Currency) -> int:
        return CURRENCY_PRECISION.get(currency, 2)

    def fx_rate(self, currency: Currency) -> float:
        return self._fx_config.rate_for(currency)

    def eur_to_currency_major(self, amount: float | Decimal, currency: Currency) -> Decimal:
        """EUR amount -> major units of currency, rounded half-up at its precision."""
        quantum = Decimal(1).scaleb(-self.precision(currency))
        converted = to_decimal(amount) * to_decimal(self.fx_rate(currency))
        major = converted.quantize(quantum, rounding=ROUND_HALF_UP)
        logger.debug(f"[FX] {amount} EUR -> {major} {currency.value}")
        return major

    def major_to_minor_units(self, major: Decimal, currency: Currency) -> int:
        scaled = to_decimal(major).scaleb(self.precision(currency))
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def eur_to_minor_units(self, amount: float | Decimal, currency: Currency) -> int:
        return self.major_to_minor_units(self.eur_to_currency_major(amount, currency), currency)

    def minor_to_major(self, minor: int, currency: Currency) -> float:
        return float(Decimal(int(minor)).scaleb(-self.precision(currency)))
