"""
LedgerConfig schema.

The typed, frozen form of a ledger configuration set.  YAML files are
parsed into these types by the loader; callers only ever see the result
of ``ledger_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ledger_kernel.domain.units import UnitKind
from ledger_kernel.domain.values import Money


@dataclass(frozen=True)
class DatabaseConfig:
    """Where ledger state is persisted."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class LedgerConfig:
    """
    Runtime ledger configuration.

    Guarantees:
        - seed_opening_balance uses ``currency``.
        - conflict_max_attempts >= 1.
    """

    config_id: str
    version: int
    currency: str
    seed_opening_balance: Money
    seed_date: date
    conflict_max_attempts: int
    default_unit_kind: UnitKind
    database: DatabaseConfig | None = None
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.seed_opening_balance.currency != self.currency:
            raise ValueError(
                f"seed_opening_balance currency {self.seed_opening_balance.currency} "
                f"does not match configured currency {self.currency}"
            )
        if self.conflict_max_attempts < 1:
            raise ValueError(
                f"conflict_max_attempts must be at least 1, got {self.conflict_max_attempts}"
            )
