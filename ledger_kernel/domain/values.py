"""
Values -- Immutable, self-validating money value object.

Responsibility:
    Provides ``Money``, the fixed-point monetary type used by every ledger
    computation. Amounts are held as integer cents; the decimal form exists
    only at the boundary (``Money.of`` in, ``Money.amount`` out).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module and by all engines.

Invariants enforced:
    - Fixed precision: exactly two decimal places (scale 100) system-wide.
      Conversions from decimal round ROUND_HALF_UP once, at the boundary.
    - No floats: float inputs are rejected with TypeError.
    - Same-currency arithmetic: +, -, and ordering refuse mixed codes.

Failure modes:
    - TypeError on float or non-integer cents.
    - ValueError on malformed decimal strings or currency codes.
    - CurrencyMismatchError when arithmetic mixes currency codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger_kernel.exceptions import CurrencyMismatchError

MONEY_DECIMAL_PLACES = 2
MONEY_SCALE = 10**MONEY_DECIMAL_PLACES
DEFAULT_CURRENCY = "PKR"

_CENT = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


def to_decimal(value: Decimal | str | int) -> Decimal:
    """
    Convert a boundary value to Decimal without going through float.

    Raises:
        TypeError: If value is a float (or any other unsupported type).
        ValueError: If value is not a finite number.
    """
    if isinstance(value, (bool, float)):
        raise TypeError(f"{type(value).__name__} amounts are not accepted: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def decimal_to_cents(value: Decimal) -> int:
    """
    Round a Decimal to whole cents (ROUND_HALF_UP) and return the integer.

    Raises:
        ValueError: If the amount has more digits than the decimal context
            can hold at cent precision.
    """
    try:
        rounded = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Amount too large to represent in cents: {value}") from e
    return int(rounded.scaleb(MONEY_DECIMAL_PLACES))


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Holds an integer number of cents and a reserved currency code. All
        arithmetic is integer arithmetic; nothing accumulates drift.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - cents is always an int
        - currency is always a three-letter uppercase code

    Non-goals:
        - Does NOT convert between currencies; the code is carried, not used.
        - Does NOT multiply, divide or take percentages (see CurrencyEngine).
    """

    cents: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise TypeError(f"cents must be int, got {type(self.cents).__name__}")
        code = self.currency.upper().strip() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str = DEFAULT_CURRENCY) -> Money:
        """
        Create Money from a decimal boundary value.

        ``Money.of("5000.00")`` is 500000 cents. Values with more than two
        decimal places are rounded half-up.

        Raises:
            TypeError: If amount is a float.
            ValueError: If amount is not a finite number.
        """
        return cls(cents=decimal_to_cents(to_decimal(amount)), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        """Create a zero amount in the given currency."""
        return cls(cents=0, currency=currency)

    @property
    def amount(self) -> Decimal:
        """Decimal display value with exactly two places."""
        return Decimal(self.cents).scaleb(-MONEY_DECIMAL_PLACES)

    @property
    def is_zero(self) -> bool:
        return self.cents == 0

    @property
    def is_positive(self) -> bool:
        return self.cents > 0

    @property
    def is_negative(self) -> bool:
        return self.cents < 0

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(cents=self.cents - other.cents, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(cents=-self.cents, currency=self.currency)

    def __abs__(self) -> Money:
        return Money(cents=abs(self.cents), currency=self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.cents < other.cents

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.cents <= other.cents

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.cents > other.cents

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.cents >= other.cents

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
