"""
Fixed-point money value type and arithmetic.

A Money value is ``units + nanos * 10**-9`` in ``currency_code``. Arithmetic is
done on the integer total of nanos, so no operation here ever goes through
floating point.
"""
from pydantic import BaseModel, ConfigDict, Field

from storefront.exceptions import (
    CurrencyMismatchError,
    InvalidMoneyError,
    MoneyOverflowError,
)

NANOS_MIN = -999_999_999
NANOS_MAX = 999_999_999
NANOS_MOD = 1_000_000_000

# units are backed by a signed 64-bit integer on the wire
UNITS_MIN = -(2 ** 63)
UNITS_MAX = 2 ** 63 - 1


class Money(BaseModel):
    """Amount of money in a single currency"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    currency_code: str = Field("", alias="currencyCode", description="ISO 4217 currency code")
    units: int = Field(0, description="Whole units of the amount")
    nanos: int = Field(0, description="Nano (10^-9) units of the amount")

    @classmethod
    def from_nanos(cls, currency_code: str, total_nanos: int) -> "Money":
        """Build a normalized Money from a total amount of nanos, truncating toward zero"""
        sign = -1 if total_nanos < 0 else 1
        units, nanos = divmod(abs(total_nanos), NANOS_MOD)
        units, nanos = sign * units, sign * nanos
        if units < UNITS_MIN or units > UNITS_MAX:
            raise MoneyOverflowError(units)
        return cls(currency_code=currency_code, units=units, nanos=nanos)

    def total_nanos(self) -> int:
        return self.units * NANOS_MOD + self.nanos

    def _compare(self, other: "Money") -> int:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency_code != other.currency_code:
            raise CurrencyMismatchError(self.currency_code, other.currency_code)
        mine, theirs = self.total_nanos(), other.total_nanos()
        return (mine > theirs) - (mine < theirs)

    def __lt__(self, other: "Money") -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result < 0

    def __le__(self, other: "Money") -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result <= 0

    def __gt__(self, other: "Money") -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result > 0

    def __ge__(self, other: "Money") -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result >= 0


def zero(currency_code: str) -> Money:
    return Money(currency_code=currency_code)


def is_valid(m: Money) -> bool:
    """Nanos within range and signs of units and nanos agree"""
    if m.nanos < NANOS_MIN or m.nanos > NANOS_MAX:
        return False
    if m.units == 0 or m.nanos == 0:
        return True
    return (m.units < 0) == (m.nanos < 0)


def is_zero(m: Money) -> bool:
    return m.units == 0 and m.nanos == 0


def is_positive(m: Money) -> bool:
    return is_valid(m) and (m.units > 0 or (m.units == 0 and m.nanos > 0))


def is_negative(m: Money) -> bool:
    return is_valid(m) and (m.units < 0 or (m.units == 0 and m.nanos < 0))


def are_same_currency(a: Money, b: Money) -> bool:
    return a.currency_code == b.currency_code and a.currency_code != ""


def negate(m: Money) -> Money:
    return Money(currency_code=m.currency_code, units=-m.units, nanos=-m.nanos)


def sum_money(a: Money, b: Money) -> Money:
    """
    Add two amounts of the same currency.

    Raises:
        CurrencyMismatchError: currency codes differ
        InvalidMoneyError: either operand is not a valid Money
        MoneyOverflowError: result does not fit the units range
    """
    if a.currency_code != b.currency_code:
        raise CurrencyMismatchError(a.currency_code, b.currency_code)
    for m in (a, b):
        if not is_valid(m):
            raise InvalidMoneyError(m.units, m.nanos)
    return Money.from_nanos(a.currency_code, a.total_nanos() + b.total_nanos())


def multiply_slow(m: Money, n: int) -> Money:
    """
    Multiply an amount by a non-negative integer.

    The product is taken on the exact integer nanos total and renormalized,
    so it always equals ``n`` repeated additions of ``m``.
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"Multiplier must be an integer, got {type(n).__name__}")
    if n < 0:
        raise ValueError(f"Multiplier must be non-negative, got {n}")
    if not is_valid(m):
        raise InvalidMoneyError(m.units, m.nanos)
    return Money.from_nanos(m.currency_code, m.total_nanos() * n)
