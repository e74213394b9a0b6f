"""
Module: ledger_engines.currency
Responsibility:
    Fixed-point money arithmetic on integer cents: rounding at the
    boundary, totals, scalar multiplication, division and percentages.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.domain and ledger_kernel.exceptions.

Invariants enforced:
    - One precision: two decimal places (scale 100) for every result.
    - Integer arithmetic: amounts stay in cents; a scalar is decomposed
      exactly into an integer mantissa and a power-of-ten exponent, the two
      integers are multiplied, and the product is scaled back once with a
      single ROUND_HALF_UP.  No intermediate float, no double rounding.
    - Floats are rejected everywhere (TypeError).

Failure modes:
    - TypeError on float inputs.
    - ValueError on non-finite or malformed decimal strings.
    - CurrencyMismatchError when combining amounts in different currencies.
    - Division by zero is NOT an error: it returns zero money.

Usage:
    from ledger_engines.currency import CurrencyEngine
    from ledger_kernel.domain.values import Money

    engine = CurrencyEngine()
    engine.percentage_of(Money.of("2500.00"), "12.5")   # Money 312.50
    engine.divide(Money.of("10.00"), 0)                 # Money 0.00
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ledger_kernel.domain.units import Quantity
from ledger_kernel.domain.values import (
    DEFAULT_CURRENCY,
    Money,
    to_decimal,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.currency")

Scalar = Decimal | str | int


def round_half_up_div(numerator: int, denominator: int) -> int:
    """
    Integer division rounded half away from zero.

    ``denominator`` must be positive.
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def decompose(value: Scalar) -> tuple[int, int]:
    """
    Split a decimal scalar into ``(mantissa, scale)`` with
    ``value == mantissa / scale`` exactly and ``scale`` a power of ten.
    """
    d = to_decimal(value)
    sign, digits, exponent = d.as_tuple()
    mantissa = int("".join(map(str, digits)) or "0")
    if sign:
        mantissa = -mantissa
    if exponent >= 0:
        return mantissa * 10**exponent, 1
    return mantissa, 10**-exponent


class CurrencyEngine:
    """
    Stateless money engine.

    Contract:
        Pure functions over ``Money`` values and decimal scalars.
    Guarantees:
        - Every result is Money with exactly two decimal places.
        - Results are identical for identical inputs (no float anywhere).
    Non-goals:
        - Does not convert between currencies.
    """

    def __init__(self, currency: str = DEFAULT_CURRENCY):
        self.currency = currency

    # ------------------------------------------------------------------
    # Boundary conversion
    # ------------------------------------------------------------------

    def round(self, value: Money | Scalar) -> Money:
        """Round a boundary value to cents (ROUND_HALF_UP)."""
        if isinstance(value, Money):
            return value
        return Money.of(value, self.currency)

    def from_decimal(self, value: Scalar) -> Money:
        return Money.of(value, self.currency)

    def to_decimal(self, money: Money) -> Decimal:
        """Two-place decimal display value."""
        return money.amount

    # ------------------------------------------------------------------
    # Additive
    # ------------------------------------------------------------------

    def add(self, *amounts: Money) -> Money:
        return self.total(amounts)

    def subtract(self, a: Money, b: Money) -> Money:
        return a - b

    def total(self, amounts: Iterable[Money]) -> Money:
        """Sum of amounts; an empty iterable totals to zero."""
        result: Money | None = None
        for amount in amounts:
            result = amount if result is None else result + amount
        return result if result is not None else Money.zero(self.currency)

    # ------------------------------------------------------------------
    # Multiplicative
    # ------------------------------------------------------------------

    def multiply(self, amount: Money, scalar: Scalar) -> Money:
        """
        ``amount * scalar`` rounded once to cents.

        ``cents * mantissa`` is exact; dividing by the scalar's scale once
        removes the extra scaling the mantissa introduced.
        """
        mantissa, scale = decompose(scalar)
        cents = round_half_up_div(amount.cents * mantissa, scale)
        return Money(cents, amount.currency)

    def divide(self, amount: Money, divisor: Scalar) -> Money:
        """
        ``amount / divisor`` rounded once to cents.

        A zero divisor yields zero money rather than an error.
        """
        mantissa, scale = decompose(divisor)
        if mantissa == 0:
            logger.debug(
                "currency_divide_by_zero",
                extra={"amount": str(amount.amount), "currency": amount.currency},
            )
            return Money.zero(amount.currency)
        numerator = amount.cents * scale
        if mantissa < 0:
            numerator, mantissa = -numerator, -mantissa
        return Money(round_half_up_div(numerator, mantissa), amount.currency)

    def percentage_of(self, amount: Money, percent: Scalar) -> Money:
        """``amount * percent / 100`` with a single final rounding."""
        mantissa, scale = decompose(percent)
        cents = round_half_up_div(amount.cents * mantissa, scale * 100)
        return Money(cents, amount.currency)

    def line_total(self, quantity: Quantity | Scalar, rate: Money | Scalar) -> Money:
        """
        Quantity times a per-unit rate.

        A ``Quantity`` contributes its display units (1600-60 kg-grams is
        1600.060 kg; 12.5 ft is 12.5).
        """
        rate_money = self.round(rate)
        if isinstance(quantity, Quantity):
            cents = round_half_up_div(
                rate_money.cents * quantity.canonical_value, quantity.kind.scale
            )
            return Money(cents, rate_money.currency)
        return self.multiply(rate_money, quantity)



__all__ = [
    "CurrencyEngine",
    "Scalar",
    "decompose",
    "round_half_up_div",
]
