"""
Module: ledger_kernel.models.ledger_transaction
Responsibility: ORM persistence for ledger transactions (invoices, payments,
    adjustments and manual cash entries).  One row per business event.
Architecture position: Kernel > Models.  May import from db/ and domain/.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - transaction_id is UNIQUE: the same business event is stored once.
    - Amounts are integer cents in a single currency per row.
    - Only rows with is_manual = True may be updated or deleted
      (see db/immutability.py).

Failure modes:
    - IntegrityError on duplicate transaction_id (surfaced by
      TransactionService as DuplicateEntryError).
    - ValueError from to_dto() if a stored kind or unit kind is unknown.
"""

from __future__ import annotations

from datetime import date, time

from sqlalchemy import Boolean, Index, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import (
    Cents,
    CurrencyCode,
    LongText,
    QuantityText,
    ShortCode,
    UnitKindCode,
)
from ledger_kernel.domain.ledger import CounterpartyType, LedgerTransaction, TransactionKind
from ledger_kernel.domain.units import Quantity, UnitKind
from ledger_kernel.domain.values import Money


class LedgerTransactionRecord(TrackedBase):
    """
    Persisted ledger transaction.

    Contract:
        Round-trips with ``LedgerTransaction`` via ``to_dto()`` /
        ``from_dto()``.  Quantities are stored both as canonical text (the
        human-readable stored form) and as the integer canonical value.
    """

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        Index("idx_ltx_occurred_on", "occurred_on"),
        Index("idx_ltx_counterparty", "counterparty_ref", "occurred_on"),
        Index("idx_ltx_kind", "kind"),
    )

    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    occurred_on: Mapped[date] = mapped_column(nullable=False)
    occurred_at: Mapped[time] = mapped_column(Time, nullable=False, default=time(0, 0))
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Money in integer cents
    gross_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    debit_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    credit_cents: Mapped[Cents] = mapped_column(nullable=False, default=0)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)

    counterparty_ref: Mapped[ShortCode | None] = mapped_column(nullable=True)
    counterparty_type: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    allocated_invoice_ref: Mapped[ShortCode | None] = mapped_column(nullable=True)

    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[LongText] = mapped_column(nullable=False, default="")

    # Quantity moved by an invoice line, if any
    quantity_text: Mapped[QuantityText | None] = mapped_column(nullable=True)
    quantity_value: Mapped[Cents | None] = mapped_column(nullable=True)
    unit_kind: Mapped[UnitKindCode | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerTransactionRecord {self.transaction_id} {self.kind} "
            f"{self.occurred_on} Dr {self.debit_cents} Cr {self.credit_cents}>"
        )

    def to_dto(self) -> LedgerTransaction:
        quantity = None
        if self.unit_kind is not None and self.quantity_value is not None:
            quantity = Quantity(
                kind=UnitKind.from_value(self.unit_kind),
                canonical_value=int(self.quantity_value),
                raw_input=self.quantity_text or "",
            )
        return LedgerTransaction(
            transaction_id=self.transaction_id,
            occurred_on=self.occurred_on,
            occurred_at=self.occurred_at,
            kind=TransactionKind(self.kind),
            debit=Money(int(self.debit_cents), self.currency),
            credit=Money(int(self.credit_cents), self.currency),
            gross=Money(int(self.gross_cents), self.currency),
            counterparty_ref=self.counterparty_ref,
            counterparty_type=CounterpartyType(self.counterparty_type),
            allocated_invoice_ref=self.allocated_invoice_ref,
            is_manual=self.is_manual,
            category=self.category,
            description=self.description,
            quantity=quantity,
            sequence=self.sequence,
        )

    @classmethod
    def from_dto(cls, dto: LedgerTransaction) -> LedgerTransactionRecord:
        record = cls(transaction_id=dto.transaction_id, is_manual=dto.is_manual)
        record.apply_dto(dto)
        return record

    def apply_dto(self, dto: LedgerTransaction) -> None:
        """Copy every mutable field from ``dto`` onto this row."""
        self.kind = dto.kind.value
        self.category = dto.category
        self.occurred_on = dto.occurred_on
        self.occurred_at = dto.occurred_at
        self.sequence = dto.sequence
        self.gross_cents = dto.gross.cents
        self.debit_cents = dto.debit.cents
        self.credit_cents = dto.credit.cents
        self.currency = dto.currency
        self.counterparty_ref = dto.counterparty_ref
        self.counterparty_type = dto.counterparty_type.value
        self.allocated_invoice_ref = dto.allocated_invoice_ref
        self.description = dto.description
        if dto.quantity is not None:
            self.quantity_text = dto.quantity.canonical_text
            self.quantity_value = dto.quantity.canonical_value
            self.unit_kind = dto.quantity.kind.value
        else:
            self.quantity_text = None
            self.quantity_value = None
            self.unit_kind = None
