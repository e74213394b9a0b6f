"""
Units -- Unit-of-measure kinds and the immutable Quantity value object.

Responsibility:
    Defines the six unit kinds stock is measured in, the format family each
    belongs to, and ``Quantity``: an integer canonical value tagged with its
    kind. Weight kinds count grams (a 1000-base mixed radix over kilograms);
    count kinds count thousandths of a piece, bag, foot or meter so that
    decimal input like ``"12.5"`` feet stays integral.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Parsing and arithmetic live in ``ledger_engines.units.UnitEngine``;
    this module owns only the representation and its rendering.

Invariants enforced:
    - canonical_value is a non-negative int.
    - display and canonical_text are derived from canonical_value alone, so
      re-parsing either reproduces the same canonical_value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class UnitFamily(str, Enum):
    """How a unit kind is written and carried."""

    WEIGHT_MIXED = "weight-mixed"  # "1600-60" = 1600 kg 60 g
    WEIGHT_DECIMAL = "weight-decimal"  # "500.10" = 500 kg 100 g
    COUNT = "count"  # "150" bags, "12.5" ft


class UnitKind(str, Enum):
    """Unit kinds a product's stock can be kept in."""

    KG_GRAMS = "kg-grams"
    KG = "kg"
    PIECE = "piece"
    BAG = "bag"
    FOOT = "foot"
    METER = "meter"

    @property
    def family(self) -> UnitFamily:
        return _UNIT_SPECS[self][0]

    @property
    def symbol(self) -> str:
        return _UNIT_SPECS[self][1]

    @property
    def label(self) -> str:
        return _UNIT_SPECS[self][2]

    @property
    def scale(self) -> int:
        """Canonical units per display unit (grams per kg, thousandths per piece)."""
        return 1000

    @property
    def is_weight(self) -> bool:
        return self.family in (UnitFamily.WEIGHT_MIXED, UnitFamily.WEIGHT_DECIMAL)

    @classmethod
    def from_value(cls, value: str | UnitKind) -> UnitKind:
        """Resolve a stored unit type string; unknown values raise ValueError."""
        if isinstance(value, UnitKind):
            return value
        return cls(value.strip().lower())


_UNIT_SPECS: dict[UnitKind, tuple[UnitFamily, str, str]] = {
    UnitKind.KG_GRAMS: (UnitFamily.WEIGHT_MIXED, "kg", "Kilograms-Grams"),
    UnitKind.KG: (UnitFamily.WEIGHT_DECIMAL, "kg", "Kilograms (Decimal)"),
    UnitKind.PIECE: (UnitFamily.COUNT, "pcs", "Pieces"),
    UnitKind.BAG: (UnitFamily.COUNT, "bags", "Bags"),
    UnitKind.FOOT: (UnitFamily.COUNT, "ft", "Feet"),
    UnitKind.METER: (UnitFamily.COUNT, "m", "Meters"),
}


def plain_decimal(canonical_value: int, scale: int = 1000) -> str:
    """Render canonical_value / scale without exponent or trailing zeros."""
    value = (Decimal(canonical_value) / Decimal(scale)).normalize()
    return f"{value:f}"


@dataclass(frozen=True, slots=True)
class Quantity:
    """
    Quantity of stock in one unit kind.

    Contract:
        Created by ``UnitEngine.parse`` or by arithmetic on two quantities of
        the same kind. Never mutated in place.

    Guarantees:
        - canonical_value >= 0 (grams for weight kinds, thousandths for
          count kinds)
        - ``display`` re-parses to the same canonical_value
        - ``raw_input`` keeps the string the quantity was parsed from
    """

    kind: UnitKind
    canonical_value: int
    raw_input: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.kind, UnitKind):
            object.__setattr__(self, "kind", UnitKind.from_value(self.kind))
        if isinstance(self.canonical_value, bool) or not isinstance(self.canonical_value, int):
            raise TypeError(
                f"canonical_value must be int, got {type(self.canonical_value).__name__}"
            )
        if self.canonical_value < 0:
            raise ValueError(f"Quantity cannot be negative: {self.canonical_value}")

    @property
    def kg(self) -> int:
        """Whole kilograms (weight kinds only)."""
        return self.canonical_value // 1000

    @property
    def grams(self) -> int:
        """Gram remainder 0-999 (weight kinds only)."""
        return self.canonical_value % 1000

    @property
    def is_zero(self) -> bool:
        return self.canonical_value == 0

    @property
    def display(self) -> str:
        if self.kind.is_weight:
            if self.grams:
                return f"{self.kg}kg {self.grams}g"
            return f"{self.kg}kg"
        return f"{plain_decimal(self.canonical_value, self.kind.scale)} {self.kind.symbol}"

    @property
    def canonical_text(self) -> str:
        """Stored/exchanged string form."""
        family = self.kind.family
        if family is UnitFamily.WEIGHT_MIXED:
            return f"{self.kg}-{self.grams}" if self.grams else str(self.kg)
        return plain_decimal(self.canonical_value, self.kind.scale)

    def __str__(self) -> str:
        return self.display

    def __repr__(self) -> str:
        return f"Quantity({self.kind.value!r}, {self.canonical_value!r})"
