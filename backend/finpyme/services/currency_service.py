"""ARS/USD conversion and display formatting.

Stored amounts are ARS. The display currency and the dollar quote used for
conversion travel as an explicit `CurrencyConfig`, so every request formats
with the preferences it was given and nothing reads ambient state.
"""

import math
from dataclasses import dataclass

from finpyme.config import settings
from finpyme.services.rate_provider import DOLLAR_TYPES, RateSnapshot
from finpyme.utils.numbers import format_es_ar, to_float

CURRENCIES = ("ARS", "USD")


@dataclass(frozen=True)
class CurrencyConfig:
    display_currency: str = "ARS"
    dollar_type: str = "oficial"

    def __post_init__(self) -> None:
        if self.display_currency not in CURRENCIES:
            raise ValueError(f"Unsupported display currency: {self.display_currency}")
        if self.dollar_type not in DOLLAR_TYPES:
            raise ValueError(f"Unknown dollar type: {self.dollar_type}")

    @classmethod
    def resolve(
        cls,
        currency: str | None = None,
        dollar_type: str | None = None,
        user=None,
    ) -> "CurrencyConfig":
        """Explicit values win, then the user's stored preferences, then settings.

        Unknown values are ignored rather than rejected.
        """
        candidates_currency = [
            currency,
            getattr(user, "preferred_currency", None),
            settings.default_currency,
        ]
        candidates_dollar = [
            dollar_type,
            getattr(user, "preferred_dollar_type", None),
            settings.default_dollar_type,
        ]
        chosen_currency = next((c for c in candidates_currency if c in CURRENCIES), "ARS")
        chosen_dollar = next((d for d in candidates_dollar if d in DOLLAR_TYPES), "oficial")
        return cls(display_currency=chosen_currency, dollar_type=chosen_dollar)


class CurrencyService:
    def __init__(self, config: CurrencyConfig, snapshot: RateSnapshot):
        self.config = config
        self.snapshot = snapshot

    @property
    def exchange_rate(self) -> float:
        """ARS per USD for the selected dollar type."""
        return self.snapshot.rate_for(self.config.dollar_type)

    def convert(self, amount, from_currency: str, to_currency: str) -> float:
        """Convert between ARS and USD.

        Invalid input (or a zero rate) yields 0. Pairs other than ARS<->USD
        are returned unchanged.
        """
        value = to_float(amount)
        rate = self.exchange_rate
        if math.isnan(value) or not rate:
            return 0.0

        if from_currency == to_currency:
            return value
        if from_currency == "ARS" and to_currency == "USD":
            return value / rate
        if from_currency == "USD" and to_currency == "ARS":
            return value * rate
        return value

    def format(self, amount, show_symbol: bool = True) -> str:
        """Render an ARS amount in the display currency, e.g. `$1.234 ARS` / `$0,97 USD`.

        The absolute value is rendered; callers show direction separately.
        """
        value = to_float(amount)
        if not math.isfinite(value):
            return "0"

        currency = self.config.display_currency
        if currency == "USD":
            value = self.convert(value, "ARS", "USD")

        decimals = 2 if currency == "USD" else 0
        formatted = format_es_ar(abs(value), decimals)
        if not show_symbol:
            return formatted
        return f"${formatted} {currency}"

    def to_display(self, amount) -> float:
        """Convert a stored ARS amount into the display currency."""
        return self.convert(amount, "ARS", self.config.display_currency)
