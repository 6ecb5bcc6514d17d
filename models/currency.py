"""
FX configuration for EUR -> currency conversion.

The configuration is an immutable value built once (normally at startup from
the process environment) and handed to CurrencyConverter. Overrides are looked
up through an explicit, ordered list of candidate keys per currency.
"""

import logging
import math
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from enums.currency import Currency

logger = logging.getLogger(__name__)

DEFAULT_FX_RATES: dict[Currency, float] = {
    Currency.EUR: 1.0,
    Currency.USD: 1.08,
    Currency.GBP: 0.85,
    Currency.PLN: 4.3,
}

# Checked in order, first valid value wins
FX_OVERRIDE_KEY_TEMPLATES: tuple[str, ...] = (
    "FX_EUR_{code}",
    "GG_FX_EUR_{code}",
    "FX_{code}",
    "GG_FX_{code}",
    "EUR_{code}_RATE",
)


def fx_override_candidates(currency: Currency) -> list[str]:
    """Ordered environment keys that may override the EUR->currency rate."""
    return [template.format(code=currency.value) for template in FX_OVERRIDE_KEY_TEMPLATES]


def parse_positive_rate(raw: object) -> float | None:
    """Return raw as a positive finite float, or None if it is not one."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


class FxConfig(BaseModel):
    """Immutable FX rates: hard-coded defaults plus resolved overrides."""
    model_config = ConfigDict(frozen=True)

    default_rates: dict[Currency, float] = Field(default_factory=lambda: dict(DEFAULT_FX_RATES))
    overrides: dict[Currency, float] = Field(default_factory=dict)

    def rate_for(self, currency: Currency) -> float:
        if currency == Currency.EUR:
            return 1.0
        override = parse_positive_rate(self.overrides.get(currency))
        if override is not None:
            return override
        return self.default_rates.get(currency, DEFAULT_FX_RATES[currency])

    @classmethod
    def from_mapping(cls, env: Mapping[str, str], default_rates: dict[Currency, float] | None = None) -> "FxConfig":
        """
        Resolve overrides from an environment-like mapping.

        Unparsable or non-positive values are logged and skipped so the next
        candidate key (or finally the default rate) applies.

        Args:
            env: Mapping to read override keys from (usually os.environ)
            default_rates: Optional replacement for DEFAULT_FX_RATES

        Returns:
            FxConfig with one override per currency that had a valid key
        """
        overrides: dict[Currency, float] = {}
        for currency in Currency:
            if currency == Currency.EUR:
                continue
            for key in fx_override_candidates(currency):
                raw = env.get(key)
                if raw is None or str(raw).strip() == "":
                    continue
                rate = parse_positive_rate(raw)
                if rate is None:
                    logger.warning(f"[FX] Ignoring invalid override {key}={raw!r} for {currency.value}")
                    continue
                overrides[currency] = rate
                logger.info(f"[FX] {currency.value} rate overridden via {key}: {rate}")
                break

        return cls(
            default_rates=dict(default_rates) if default_rates else dict(DEFAULT_FX_RATES),
            overrides=overrides
        )
