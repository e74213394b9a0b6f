"""
Module: ledger_kernel.models.daily_balance
Responsibility: ORM persistence for the carried daily cash balance.  One row
    per calendar day, keyed by ledger_date.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - ledger_date is UNIQUE.
    - closing_cents == opening_cents + incoming_cents - outgoing_cents
      (checked by DailyBalance on every to_dto()).
    - Optimistic concurrency: ``version`` is a SQLAlchemy version_id_col
      bumped explicitly by DailyBalanceCarrier, so an UPDATE whose version
      no longer matches raises StaleDataError.

Failure modes:
    - StaleDataError on a lost compare-and-swap (translated to
      ConcurrentBalanceConflictError by DailyBalanceCarrier).
    - IntegrityError on a concurrent first insert for the same day.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import Cents, CurrencyCode
from ledger_kernel.domain.ledger import DailyBalance
from ledger_kernel.domain.values import Money


class DailyBalanceRecord(TrackedBase):
    """Persisted opening/closing balance for one day."""

    __tablename__ = "daily_balances"

    ledger_date: Mapped[date] = mapped_column(nullable=False, unique=True)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    opening_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    incoming_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    outgoing_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    closing_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # The carrier sets the next version itself so every carry is a
    # compare-and-swap, even when the recomputed values are unchanged.
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return (
            f"<DailyBalanceRecord {self.ledger_date} open {self.opening_cents} "
            f"close {self.closing_cents} v{self.version}>"
        )

    def to_dto(self) -> DailyBalance:
        return DailyBalance(
            ledger_date=self.ledger_date,
            opening_balance=Money(int(self.opening_cents), self.currency),
            total_incoming=Money(int(self.incoming_cents), self.currency),
            total_outgoing=Money(int(self.outgoing_cents), self.currency),
            closing_balance=Money(int(self.closing_cents), self.currency),
            transaction_count=self.transaction_count,
        )

    @classmethod
    def from_dto(cls, dto: DailyBalance) -> DailyBalanceRecord:
        record = cls(ledger_date=dto.ledger_date)
        record.apply_dto(dto)
        return record

    def apply_dto(self, dto: DailyBalance) -> None:
        self.currency = dto.opening_balance.currency
        self.opening_cents = dto.opening_balance.cents
        self.incoming_cents = dto.total_incoming.cents
        self.outgoing_cents = dto.total_outgoing.cents
        self.closing_cents = dto.closing_balance.cents
        self.transaction_count = dto.transaction_count
