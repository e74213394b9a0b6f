"""
Module: ledger_engines.units
Responsibility:
    Parse, format, validate and combine stock quantities for the six unit
    kinds.  All arithmetic is integer arithmetic on canonical values
    (grams for weight kinds, thousandths for count kinds); decimal and
    mixed-radix text exists only at the boundary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.domain and ledger_kernel.exceptions.

Invariants enforced:
    - Round-trip closure: parse(format(q)) and parse(to_canonical_text(q))
      reproduce q.canonical_value for every quantity this module creates.
    - Non-negative stock: subtract() floors at zero instead of going
      negative.
    - Same-kind arithmetic: add/subtract/compare refuse mixed kinds.
    - No silent coercion: empty or malformed text raises; it never
      becomes zero.

Failure modes:
    - QuantityNotNumericError on empty or malformed text.
    - QuantityOutOfRangeError when grams fall outside 0-999.
    - NegativeQuantityError on a leading minus sign.
    - UnitKindMismatchError when combining quantities of different kinds.
    - QuantityValidationError from validate() (chained from the above).

Usage:
    from ledger_engines.units import UnitEngine
    from ledger_kernel.domain.units import UnitKind

    engine = UnitEngine()
    q = engine.parse("1600-60", UnitKind.KG_GRAMS)
    engine.format(q)                 # "1600kg 60g"
    engine.subtract_units("5", "10", UnitKind.BAG)   # "0"
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger_kernel.domain.units import Quantity, UnitFamily, UnitKind
from ledger_kernel.exceptions import (
    NegativeQuantityError,
    QuantityNotNumericError,
    QuantityOutOfRangeError,
    QuantityParseError,
    QuantityValidationError,
    UnitKindMismatchError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.units")

_GRAMS_PER_KG = 1000
_THOUSANDTH = Decimal("0.001")

# "1600", "1600-60"
_MIXED_RAW = re.compile(r"^([0-9]+)(?:-([0-9]+))?$")
# "1600kg", "1600kg 60g", "1600 kg 60 g"
_WEIGHT_DISPLAY = re.compile(r"^([0-9]+)\s*kg(?:\s+([0-9]+)\s*g)?$", re.IGNORECASE)
# "500.10", "500.10kg", ".5"
_DECIMAL_WEIGHT = re.compile(r"^([0-9]+(?:\.[0-9]*)?|\.[0-9]+)\s*(?:kg)?$", re.IGNORECASE)
# "150", "12.5 ft", "150 bags"
_COUNT = re.compile(r"^([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:\s*([a-z]+))?$", re.IGNORECASE)

_COUNT_SUFFIXES: dict[UnitKind, frozenset[str]] = {
    UnitKind.PIECE: frozenset({"pcs", "pc", "piece", "pieces"}),
    UnitKind.BAG: frozenset({"bag", "bags"}),
    UnitKind.FOOT: frozenset({"ft", "foot", "feet"}),
    UnitKind.METER: frozenset({"m", "meter", "meters", "metre", "metres"}),
}


def _grams_from_fraction(whole: int, fraction: Decimal, text: str, kind: UnitKind) -> int:
    grams = int((fraction * _GRAMS_PER_KG).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if grams >= _GRAMS_PER_KG:
        raise QuantityOutOfRangeError(
            text, kind.value, "decimal part must represent 0-999 grams"
        )
    return whole * _GRAMS_PER_KG + grams


class UnitEngine:
    """
    Quantity engine; holds nothing but its default unit kind.

    Contract:
        Every method is a pure function of its arguments.  Quantities in,
        quantities (or canonical strings) out.  Methods that take a
        ``kind`` fall back to ``default_kind`` when it is omitted.
    Guarantees:
        - Returned quantities have non-negative integer canonical values.
        - Returned strings use the stored canonical text contract:
          "<kg>" / "<kg>-<g>" for kg-grams, a decimal for kg, a plain
          number for count kinds.
    Non-goals:
        - Does not convert between unit kinds.
    """

    def __init__(self, default_kind: UnitKind | str = UnitKind.KG_GRAMS):
        self.default_kind = UnitKind.from_value(default_kind)

    def _kind(self, kind: UnitKind | str | None) -> UnitKind:
        return self.default_kind if kind is None else UnitKind.from_value(kind)

    # ------------------------------------------------------------------
    # Parsing and rendering
    # ------------------------------------------------------------------

    def parse(self, text: str | int, kind: UnitKind | str | None = None) -> Quantity:
        """
        Parse ``text`` as a quantity of ``kind``.

        Both the stored canonical form and the display form are accepted,
        so ``parse(format(q), kind)`` always succeeds.

        Raises:
            QuantityParseError (one of its subclasses) on bad input.
            TypeError: If text is neither str nor int.
        """
        kind = self._kind(kind)
        if isinstance(text, bool) or not isinstance(text, (str, int)):
            raise TypeError(f"Quantity text must be str or int, got {type(text).__name__}")
        raw = str(text)
        cleaned = raw.strip()

        if not cleaned:
            raise QuantityNotNumericError(raw, kind.value, "quantity is empty")
        if cleaned.startswith("-"):
            raise NegativeQuantityError(raw, kind.value, "quantities cannot be negative")

        family = kind.family
        if family is UnitFamily.WEIGHT_MIXED:
            canonical = self._parse_weight_mixed(cleaned, raw, kind)
        elif family is UnitFamily.WEIGHT_DECIMAL:
            canonical = self._parse_weight_decimal(cleaned, raw, kind)
        else:
            canonical = self._parse_count(cleaned, raw, kind)

        return Quantity(kind=kind, canonical_value=canonical, raw_input=raw)

    def _parse_weight_mixed(self, cleaned: str, raw: str, kind: UnitKind) -> int:
        match = _MIXED_RAW.match(cleaned) or _WEIGHT_DISPLAY.match(cleaned)
        if match is None:
            raise QuantityNotNumericError(
                raw, kind.value, 'expected "<kg>" or "<kg>-<grams>"'
            )
        kg = int(match.group(1))
        grams = int(match.group(2)) if match.group(2) is not None else 0
        if grams >= _GRAMS_PER_KG:
            raise QuantityOutOfRangeError(raw, kind.value, "grams must be between 0-999")
        return kg * _GRAMS_PER_KG + grams

    def _parse_weight_decimal(self, cleaned: str, raw: str, kind: UnitKind) -> int:
        display = _WEIGHT_DISPLAY.match(cleaned)
        if display is not None and display.group(2) is not None:
            grams = int(display.group(2))
            if grams >= _GRAMS_PER_KG:
                raise QuantityOutOfRangeError(raw, kind.value, "grams must be between 0-999")
            return int(display.group(1)) * _GRAMS_PER_KG + grams

        match = _DECIMAL_WEIGHT.match(cleaned)
        if match is None:
            raise QuantityNotNumericError(raw, kind.value, "expected a decimal number of kg")
        value = Decimal(match.group(1))
        whole = int(value)
        return _grams_from_fraction(whole, value - whole, raw, kind)

    def _parse_count(self, cleaned: str, raw: str, kind: UnitKind) -> int:
        match = _COUNT.match(cleaned)
        if match is None:
            raise QuantityNotNumericError(raw, kind.value, "expected a non-negative number")
        suffix = match.group(2)
        if suffix is not None and suffix.lower() not in _COUNT_SUFFIXES[kind]:
            raise QuantityNotNumericError(
                raw, kind.value, f"unexpected unit {suffix!r} for {kind.label}"
            )
        try:
            value = Decimal(match.group(1)).quantize(_THOUSANDTH, rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise QuantityNotNumericError(raw, kind.value, "number is too large") from e
        return int(value * kind.scale)

    def format(self, quantity: Quantity) -> str:
        """Human display form: "1600kg 60g", "1600kg", "12.5 ft"."""
        return quantity.display

    def to_canonical_text(self, quantity: Quantity) -> str:
        """Stored form: "1600-60", "500.1", "12.5"."""
        return quantity.canonical_text

    def from_canonical_value(self, value: int, kind: UnitKind | str | None = None) -> Quantity:
        """
        Build a quantity straight from its integer canonical value.

        Raises:
            NegativeQuantityError: If value is negative.
            TypeError: If value is not an int.
        """
        kind = self._kind(kind)
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"canonical value must be int, got {type(value).__name__}")
        if value < 0:
            raise NegativeQuantityError(str(value), kind.value, "quantities cannot be negative")
        quantity = Quantity(kind=kind, canonical_value=value)
        return Quantity(kind=kind, canonical_value=value, raw_input=quantity.canonical_text)

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    @staticmethod
    def _require_same_kind(a: Quantity, b: Quantity) -> None:
        if a.kind is not b.kind:
            raise UnitKindMismatchError(a.kind.value, b.kind.value)

    def add(self, a: Quantity, b: Quantity) -> Quantity:
        self._require_same_kind(a, b)
        return self.from_canonical_value(a.canonical_value + b.canonical_value, a.kind)

    def subtract(self, a: Quantity, b: Quantity) -> Quantity:
        """``a - b``, floored at zero: stock never goes negative."""
        self._require_same_kind(a, b)
        result = a.canonical_value - b.canonical_value
        if result < 0:
            logger.debug(
                "quantity_subtract_floored",
                extra={
                    "unit_kind": a.kind.value,
                    "minuend": a.canonical_value,
                    "subtrahend": b.canonical_value,
                },
            )
            result = 0
        return self.from_canonical_value(result, a.kind)

    def compare(self, a: Quantity, b: Quantity) -> int:
        """-1, 0 or 1 as ``a`` is less than, equal to or greater than ``b``."""
        self._require_same_kind(a, b)
        if a.canonical_value < b.canonical_value:
            return -1
        if a.canonical_value > b.canonical_value:
            return 1
        return 0

    def is_sufficient(self, have: Quantity, need: Quantity) -> bool:
        return self.compare(have, need) >= 0

    def stock_percentage(self, current: Quantity, requested: Quantity) -> Decimal:
        """
        ``requested`` as a percentage of ``current``, to two places.

        Zero current stock yields ``Decimal("0")``.
        """
        self._require_same_kind(current, requested)
        if current.is_zero:
            return Decimal("0")
        ratio = Decimal(requested.canonical_value) * 100 / Decimal(current.canonical_value)
        return ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, text: str, kind: UnitKind | str | None = None) -> None:
        """
        Check ``text`` before persisting it.

        Raises:
            QuantityValidationError: chained from the underlying parse error.
        """
        try:
            self.parse(text, kind)
        except QuantityParseError as e:
            raise QuantityValidationError("quantity", e.reason) from e

    def is_valid(self, text: str, kind: UnitKind | str | None = None) -> bool:
        try:
            self.validate(text, kind)
        except QuantityValidationError:
            return False
        return True

    # ------------------------------------------------------------------
    # Canonical-string helpers
    # ------------------------------------------------------------------

    def add_units(self, a: str, b: str, kind: UnitKind | str | None = None) -> str:
        """Add two stored quantity strings, returning the stored form."""
        return self.add(self.parse(a, kind), self.parse(b, kind)).canonical_text

    def subtract_units(self, a: str, b: str, kind: UnitKind | str | None = None) -> str:
        """Subtract two stored quantity strings; floors at "0"."""
        return self.subtract(self.parse(a, kind), self.parse(b, kind)).canonical_text

    def compare_units(self, a: str, b: str, kind: UnitKind | str | None = None) -> int:
        return self.compare(self.parse(a, kind), self.parse(b, kind))

    def has_sufficient_stock(
        self, current: str, requested: str, kind: UnitKind | str | None = None
    ) -> bool:
        return self.is_sufficient(self.parse(current, kind), self.parse(requested, kind))

    def format_text(self, text: str, kind: UnitKind | str | None = None) -> str:
        """Render a stored quantity string for display."""
        return self.format(self.parse(text, kind))


_default_engine = UnitEngine()


def parse_quantity(text: str | int, kind: UnitKind | str) -> Quantity:
    return _default_engine.parse(text, kind)


def format_quantity(quantity: Quantity) -> str:
    return _default_engine.format(quantity)


def add_units(a: str, b: str, kind: UnitKind | str) -> str:
    return _default_engine.add_units(a, b, kind)


def subtract_units(a: str, b: str, kind: UnitKind | str) -> str:
    return _default_engine.subtract_units(a, b, kind)


def compare_units(a: str, b: str, kind: UnitKind | str) -> int:
    return _default_engine.compare_units(a, b, kind)


def has_sufficient_stock(current: str, requested: str, kind: UnitKind | str) -> bool:
    return _default_engine.has_sufficient_stock(current, requested, kind)
