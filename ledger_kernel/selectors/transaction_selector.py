"""
Module: ledger_kernel.selectors.transaction_selector
Responsibility: Read-only queries over stored ledger transactions and daily
    balance rows.  TransactionSelector is the persistent implementation of
    the projector's TransactionSource.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.

Invariants enforced:
    - Scope filtering happens in SQL; ordering is NOT relied upon by callers
      (LedgerProjector sorts deterministically itself).
    - Returned values are domain objects (LedgerTransaction, DailyBalance).

Failure modes:
    - TransactionNotFoundError from get() on an unknown id.
"""

from datetime import date

from sqlalchemy import select

from ledger_kernel.domain.ledger import DailyBalance, LedgerScope, LedgerTransaction
from ledger_kernel.exceptions import TransactionNotFoundError
from ledger_kernel.models.daily_balance import DailyBalanceRecord
from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord
from ledger_kernel.selectors.base import BaseSelector


class TransactionSelector(BaseSelector[LedgerTransactionRecord]):
    """Reads ledger transactions for statement projection."""

    def fetch_transactions(self, scope: LedgerScope) -> list[LedgerTransaction]:
        """All transactions within ``scope``."""
        stmt = select(LedgerTransactionRecord)
        if scope.counterparty_ref is not None:
            stmt = stmt.where(LedgerTransactionRecord.counterparty_ref == scope.counterparty_ref)
        if scope.start_date is not None:
            stmt = stmt.where(LedgerTransactionRecord.occurred_on >= scope.start_date)
        if scope.end_date is not None:
            stmt = stmt.where(LedgerTransactionRecord.occurred_on <= scope.end_date)
        stmt = stmt.order_by(
            LedgerTransactionRecord.occurred_on,
            LedgerTransactionRecord.occurred_at,
            LedgerTransactionRecord.sequence,
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def get(self, transaction_id: str) -> LedgerTransaction:
        return self.get_record(transaction_id).to_dto()

    def exists(self, transaction_id: str) -> bool:
        stmt = select(LedgerTransactionRecord.id).where(
            LedgerTransactionRecord.transaction_id == transaction_id
        )
        return self.session.scalar(stmt) is not None

    def get_record(self, transaction_id: str) -> LedgerTransactionRecord:
        stmt = select(LedgerTransactionRecord).where(
            LedgerTransactionRecord.transaction_id == transaction_id
        )
        record = self.session.scalar(stmt)
        if record is None:
            raise TransactionNotFoundError(transaction_id)
        return record


class DailyBalanceSelector(BaseSelector[DailyBalanceRecord]):
    """Reads carried daily balance rows."""

    def balance_for(self, ledger_date: date) -> DailyBalance | None:
        record = self.session.scalar(
            select(DailyBalanceRecord).where(DailyBalanceRecord.ledger_date == ledger_date)
        )
        return record.to_dto() if record is not None else None

    def latest_record_before(self, ledger_date: date) -> DailyBalanceRecord | None:
        """
        Row of the most recent stored day before ``ledger_date``.

        Always reloaded from the database, so the values and version belong
        to the same committed state.
        """
        return self.session.scalar(
            select(DailyBalanceRecord)
            .where(DailyBalanceRecord.ledger_date < ledger_date)
            .order_by(DailyBalanceRecord.ledger_date.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )

    def version_stamp_before(
        self, ledger_date: date, not_before: date | None = None
    ) -> tuple[date, int] | None:
        """``(ledger_date, version)`` of the latest stored day before ``ledger_date``."""
        stmt = select(DailyBalanceRecord.ledger_date, DailyBalanceRecord.version).where(
            DailyBalanceRecord.ledger_date < ledger_date
        )
        if not_before is not None:
            stmt = stmt.where(DailyBalanceRecord.ledger_date >= not_before)
        row = self.session.execute(
            stmt.order_by(DailyBalanceRecord.ledger_date.desc()).limit(1)
        ).first()
        return (row.ledger_date, row.version) if row is not None else None

    def tracked_dates_from(self, ledger_date: date) -> list[date]:
        """Stored days on or after ``ledger_date``, ascending."""
        stmt = (
            select(DailyBalanceRecord.ledger_date)
            .where(DailyBalanceRecord.ledger_date >= ledger_date)
            .order_by(DailyBalanceRecord.ledger_date)
        )
        return list(self.session.scalars(stmt))

    def chain(self, start_date: date, end_date: date) -> list[DailyBalance]:
        stmt = (
            select(DailyBalanceRecord)
            .where(DailyBalanceRecord.ledger_date >= start_date)
            .where(DailyBalanceRecord.ledger_date <= end_date)
            .order_by(DailyBalanceRecord.ledger_date)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]
