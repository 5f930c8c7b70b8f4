"""
Currency conversion over an immutable rate table.
"""
import math
from types import MappingProxyType
from typing import List, Mapping

from storefront.exceptions import MoneyOverflowError
from storefront.money import Money, NANOS_MOD, is_negative

BASE_CURRENCY = "USD"

# Unknown currency codes pass through unchanged
FALLBACK_RATE = 1.0

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "JPY": "¥",
    "EUR": "€",
    "TRY": "₺",
    "GBP": "£",
}
DEFAULT_SYMBOL = "$"


class CurrencyConverter:
    """Converts money between currencies through the base currency (USD)"""

    def __init__(self, rates: Mapping[str, float]):
        for code, rate in rates.items():
            if not rate > 0:
                raise ValueError(f"Exchange rate for {code} must be positive, got {rate}")
        self._rates = MappingProxyType(dict(rates))

    @property
    def rates(self) -> Mapping[str, float]:
        return self._rates

    def rate(self, currency_code: str) -> float:
        return self._rates.get(currency_code, FALLBACK_RATE)

    def supported_currencies(self) -> List[str]:
        return list(self._rates)

    def is_supported(self, currency_code: str) -> bool:
        return currency_code in self._rates

    def convert(self, m: Money, target_currency: str) -> Money:
        """
        Convert ``m`` into ``target_currency``.

        The converted nanos total is truncated toward zero, so converting
        back and forth is not guaranteed to round-trip.
        """
        if m.currency_code == target_currency:
            return m

        total_nanos = float(m.units) * NANOS_MOD + float(m.nanos)
        converted = total_nanos / self.rate(m.currency_code) * self.rate(target_currency)
        if not math.isfinite(converted):
            raise MoneyOverflowError(converted)
        return Money.from_nanos(target_currency, int(converted))


def currency_symbol(currency_code: str) -> str:
    return CURRENCY_SYMBOLS.get(currency_code, DEFAULT_SYMBOL)


def render_money(m: Money) -> str:
    """Format as symbol, units and two-digit cents, e.g. ``$12.30``"""
    sign = "-" if is_negative(m) else ""
    cents = abs(m.nanos) // 10_000_000
    return f"{sign}{currency_symbol(m.currency_code)}{abs(m.units)}.{cents:02d}"
