"""
Domain: Money value object.

Fixed-point currency amount. Amounts are Decimal so line totals are exact:
10.00 x 4 with a 10% discount is exactly 36.00, never 35.999999.

Invariants:
- amount is never negative.
- currency is a 3-letter uppercase code.
- arithmetic between different currencies is rejected.

Every operation returns a new instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .errors import InvalidArgumentError

DEFAULT_CURRENCY: str = "BRL"

_CENTS = Decimal("0.01")
_HUNDRED = Decimal("100")

Number = Union[int, Decimal]


def _require_currency(currency: str) -> None:
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha() or not currency.isupper():
        raise InvalidArgumentError(f"currency must be a 3-letter uppercase code, got {currency!r}")


@dataclass(frozen=True, slots=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        # bool is an int subclass, floats are binary fractions: both are rejected.
        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, Decimal)):
            raise InvalidArgumentError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if isinstance(self.amount, int):
            object.__setattr__(self, "amount", Decimal(self.amount))
        if not self.amount.is_finite():
            raise InvalidArgumentError("Money amount must be finite")
        if self.amount < 0:
            raise InvalidArgumentError(f"Money amount cannot be negative, got {self.amount}")
        _require_currency(self.currency)

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(Decimal("0"), currency)

    @staticmethod
    def of(value: Union[str, int, Decimal], currency: str = DEFAULT_CURRENCY) -> "Money":
        """Factory that coerces strings and ints to Decimal safely."""

        if isinstance(value, float):
            raise InvalidArgumentError("Money cannot be built from a float; pass a string or Decimal")
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidArgumentError(f"Invalid money amount: {value!r}") from exc
        return Money(amount, currency)

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def multiply(self, factor: Number) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            raise InvalidArgumentError(f"Money can only be multiplied by int or Decimal, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def apply_discount(self, percentage: Number) -> "Money":
        """Return this amount reduced by `percentage` percent (0..100)."""

        pct = Decimal(percentage)
        if pct < 0 or pct > _HUNDRED:
            raise InvalidArgumentError("Discount percentage must be between 0 and 100")
        return Money(self.amount - self.amount * (pct / _HUNDRED), self.currency)

    def quantized(self) -> "Money":
        """Rounded to cents for display; never used inside total computation."""

        return Money(self.amount.quantize(_CENTS, rounding=ROUND_HALF_UP), self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __mul__(self, factor: Number) -> "Money":
        return self.multiply(factor)

    def __str__(self) -> str:
        return f"{self.quantized().amount} {self.currency}"

    def _require_same_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise InvalidArgumentError("Money operand is required")
        if self.currency != other.currency:
            raise InvalidArgumentError(f"Cannot combine {self.currency} with {other.currency}")


__all__ = ["DEFAULT_CURRENCY", "Money"]
