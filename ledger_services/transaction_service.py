"""
TransactionService -- writes to the ledger transaction store.

Responsibility:
    Records invoices, payments, adjustments and manual cash entries;
    edits and deletes manual entries; and keeps the persisted daily
    balance chain in step with every cash-moving write.  Each write
    returns an InvalidationNotice naming the daily balances and customer
    ledgers the write made stale.

Architecture position:
    Services -- imperative shell.  Uses TransactionSelector for reads,
    LedgerTransactionRecord for writes and DailyBalanceCarrier for the
    day chain.

Invariants enforced:
    - transaction_id is unique: recording an existing id raises
      DuplicateEntryError.
    - Only manual entries are mutable.  Edits and deletes of system
      entries raise ImmutableEntryError before the session is touched
      (the ORM listeners in db/immutability.py are the second guard).
    - A cash-moving write re-carries its day and every later tracked day
      in the same transaction.

Failure modes:
    - DuplicateEntryError, ImmutableEntryError, TransactionNotFoundError.
    - TransactionValidationError from an edit that produces an invalid
      transaction.
    - ConcurrentBalanceConflictError from the carry; roll back and retry
      the whole write.

Usage:
    with session_scope() as session:
        carrier = DailyBalanceCarrier.from_config(session, config)
        service = TransactionService(session, SystemClock(), carrier)
        notice = service.record(payment)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, time

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.ledger import (
    CounterpartyType,
    InvalidationNotice,
    LedgerTransaction,
    TransactionKind,
    credit_entry,
    debit_entry,
)
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import DuplicateEntryError, ImmutableEntryError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord
from ledger_kernel.selectors.transaction_selector import TransactionSelector
from ledger_services.base import BaseService
from ledger_services.daily_balance_service import DailyBalanceCarrier

logger = get_logger("services.transaction")

InvalidationListener = Callable[[InvalidationNotice], None]

# Identity fields an edit may never change.
_FROZEN_FIELDS = frozenset({"transaction_id", "is_manual"})


class TransactionService(BaseService):
    """
    Ledger transaction store.

    Contract:
        Flushes within the caller's transaction; never commits.
    Guarantees:
        - The returned notice lists every carried date and every customer
          whose ledger changed.
        - ``on_invalidated`` (if given) receives each non-empty notice
          after the write has been flushed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        carrier: DailyBalanceCarrier,
        on_invalidated: InvalidationListener | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._carrier = carrier
        self._on_invalidated = on_invalidated
        self._selector = TransactionSelector(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, transaction_id: str) -> LedgerTransaction:
        return self._selector.get(transaction_id)

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def record(self, transaction: LedgerTransaction) -> InvalidationNotice:
        """Store one transaction and carry its day forward."""
        return self.record_many([transaction])

    def record_many(self, transactions: Iterable[LedgerTransaction]) -> InvalidationNotice:
        """
        Store several transactions, carrying once from the earliest
        affected cash day.
        """
        stored: list[LedgerTransaction] = []
        seen: set[str] = set()
        next_sequence = self._next_sequence()

        for transaction in transactions:
            if transaction.transaction_id in seen or self._selector.exists(transaction.transaction_id):
                logger.warning(
                    "duplicate_entry_rejected",
                    extra={"transaction_id": transaction.transaction_id},
                )
                raise DuplicateEntryError(transaction.transaction_id)
            seen.add(transaction.transaction_id)

            if transaction.sequence == 0:
                transaction = transaction.with_changes(sequence=next_sequence)
                next_sequence += 1
            self.session.add(LedgerTransactionRecord.from_dto(transaction))
            stored.append(transaction)

        if not stored:
            return InvalidationNotice()

        try:
            self.session.flush()
        except IntegrityError as exc:
            # Lost an insert race on the unique transaction_id.
            ids = ", ".join(tx.transaction_id for tx in stored)
            logger.warning("duplicate_entry_rejected", extra={"transaction_id": ids})
            raise DuplicateEntryError(ids) from exc

        for transaction in stored:
            logger.info(
                "transaction_recorded",
                extra={
                    "transaction_id": transaction.transaction_id,
                    "kind": transaction.kind.value,
                    "occurred_on": transaction.occurred_on.isoformat(),
                    "debit_cents": transaction.debit.cents,
                    "credit_cents": transaction.credit.cents,
                    "counterparty_ref": transaction.counterparty_ref,
                },
            )

        return self._after_write(stored)

    def record_manual(
        self,
        transaction_id: str,
        kind: TransactionKind,
        amount: Money,
        *,
        occurred_on: date | None = None,
        occurred_at: time | None = None,
        category: str = "",
        description: str = "",
        counterparty_ref: str | None = None,
        counterparty_type: CounterpartyType = CounterpartyType.NONE,
    ) -> InvalidationNotice:
        """
        Record a manual income or outgoing entry.

        Without an explicit date and time the entry is stamped from the
        injected clock.
        """
        kind = TransactionKind(kind)
        if kind is TransactionKind.MANUAL_INCOME:
            build = credit_entry
        elif kind is TransactionKind.MANUAL_OUTGOING:
            build = debit_entry
        else:
            raise ValueError(f"{kind.value} is not a manual entry kind")

        now = self._clock.now()
        transaction = build(
            transaction_id,
            occurred_on if occurred_on is not None else now.date(),
            kind,
            amount,
            occurred_at=occurred_at if occurred_at is not None else now.time().replace(microsecond=0),
            is_manual=True,
            category=category,
            description=description,
            counterparty_ref=counterparty_ref,
            counterparty_type=counterparty_type,
        )
        return self.record(transaction)

    # ------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------

    def update_manual(self, transaction_id: str, **changes) -> InvalidationNotice:
        """
        Edit a manual entry in place.

        Raises:
            ImmutableEntryError: the entry is system-derived.
            TransactionNotFoundError: no such entry.
            ValueError: an identity field was included in ``changes``.
        """
        frozen = _FROZEN_FIELDS.intersection(changes)
        if frozen:
            raise ValueError(f"Cannot change {', '.join(sorted(frozen))} of {transaction_id}")

        with LogContext.bind(transaction_id=transaction_id):
            record = self._mutable_record(transaction_id, "edit")
            before = record.to_dto()
            after = before.with_changes(**changes)
            record.apply_dto(after)
            self.session.flush()

            logger.info(
                "manual_entry_updated",
                extra={
                    "transaction_id": transaction_id,
                    "fields": sorted(changes),
                    "occurred_on": after.occurred_on.isoformat(),
                },
            )
            return self._after_write([before, after])

    def delete_manual(self, transaction_id: str) -> InvalidationNotice:
        """
        Remove a manual entry.

        Raises:
            ImmutableEntryError: the entry is system-derived.
            TransactionNotFoundError: no such entry.
        """
        with LogContext.bind(transaction_id=transaction_id):
            record = self._mutable_record(transaction_id, "delete")
            removed = record.to_dto()
            self.session.delete(record)
            self.session.flush()

            logger.info(
                "manual_entry_deleted",
                extra={
                    "transaction_id": transaction_id,
                    "occurred_on": removed.occurred_on.isoformat(),
                },
            )
            return self._after_write([removed])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _mutable_record(self, transaction_id: str, operation: str) -> LedgerTransactionRecord:
        record = self._selector.get_record(transaction_id)
        if not record.is_manual:
            logger.warning(
                "immutable_entry_rejected",
                extra={"transaction_id": transaction_id, "operation": operation},
            )
            raise ImmutableEntryError(transaction_id, operation)
        return record

    def _next_sequence(self) -> int:
        current = self.session.scalar(select(func.max(LedgerTransactionRecord.sequence)))
        return (current or 0) + 1

    def _after_write(self, transactions: list[LedgerTransaction]) -> InvalidationNotice:
        """Carry affected cash days forward and publish the notice."""
        ledgers = InvalidationNotice.for_transactions(*transactions)
        notice = InvalidationNotice(customer_refs=ledgers.customer_refs)

        cash_days = [tx.occurred_on for tx in transactions if tx.kind.is_cash_movement]
        if cash_days:
            carried = self._carrier.carry_forward(min(cash_days), max(cash_days))
            notice = notice.merge(
                InvalidationNotice(dates=tuple(b.ledger_date for b in carried))
            )

        if not notice.is_empty:
            logger.debug(
                "views_invalidated",
                extra={
                    "dates": [d.isoformat() for d in notice.dates],
                    "customer_refs": list(notice.customer_refs),
                },
            )
            if self._on_invalidated is not None:
                self._on_invalidated(notice)
        return notice
