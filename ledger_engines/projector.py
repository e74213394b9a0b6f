"""
Module: ledger_engines.projector
Responsibility:
    Turn an unordered set of ledger transactions into ordered statements
    with running balances: the per-customer ledger and the daily cash book.
    Every build runs Collect -> Sort -> Accumulate (-> Classify for cash).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Collection goes through the TransactionSource protocol; the projector
    never touches a session or cache.

Invariants enforced:
    - Ascending order: entries are sorted by (date, time, sequence) before
      folding; input order is irrelevant except as the final tie-break.
    - Left fold: running[i] = running[i-1] + debit[i] - credit[i], seeded
      with the opening balance.
    - No duplicate ids: a repeated transaction_id raises DuplicateEntryError;
      duplicates are never dropped.
    - Cash classification: the daily cash book holds only PAYMENT,
      MANUAL_INCOME and MANUAL_OUTGOING entries.  Invoice creation and
      adjustments move receivables, not cash.
    - Snapshot semantics: every call works on its own tuple of frozen
      transactions; nothing is cached between calls.

Failure modes:
    - DuplicateEntryError on a repeated transaction_id.
    - CurrencyMismatchError if a statement mixes currency codes.

Usage:
    from ledger_engines.projector import LedgerProjector

    projector = LedgerProjector()
    statement = projector.build_customer_statement(transactions, "C-001")
    [e.running_balance for e in statement.entries]
    statement.newest_first()
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Protocol, runtime_checkable

from ledger_engines.currency import CurrencyEngine
from ledger_engines.tracer import traced_engine
from ledger_engines.units import UnitEngine
from ledger_kernel.domain.ledger import LedgerScope, LedgerTransaction
from ledger_kernel.domain.values import DEFAULT_CURRENCY, Money
from ledger_kernel.exceptions import DuplicateEntryError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.projector")


@runtime_checkable
class TransactionSource(Protocol):
    """Anything that can hand over the transactions for a scope."""

    def fetch_transactions(self, scope: LedgerScope) -> Sequence[LedgerTransaction]:
        ...


class StatementKind(str, Enum):
    """Which view a statement was built for."""

    CUSTOMER = "customer"
    DAILY = "daily"
    GENERAL = "general"


@dataclass(frozen=True)
class StatementEntry:
    """
    One statement line.

    ``debit`` and ``credit`` are the sides the fold used.  In a customer
    statement they are the transaction's own sides; in the daily cash book
    ``debit`` is cash in and ``credit`` is cash out.
    """

    transaction: LedgerTransaction
    debit: Money
    credit: Money
    running_balance: Money
    quantity_display: str | None = None

    @property
    def transaction_id(self) -> str:
        return self.transaction.transaction_id

    @property
    def occurred_on(self) -> date:
        return self.transaction.occurred_on


@dataclass(frozen=True)
class StatementSummary:
    opening_balance: Money
    total_debit: Money
    total_credit: Money
    closing_balance: Money
    balance_side: str
    entry_count: int


@dataclass(frozen=True)
class LedgerStatement:
    """
    Ordered statement with running balances.

    Guarantees:
        - entries are in ascending (date, time, sequence) order.
        - closing_balance == opening_balance + total_debit - total_credit.
        - closing_balance equals the last entry's running balance (or the
          opening balance when there are no entries).
    """

    kind: StatementKind
    scope: LedgerScope
    opening_balance: Money
    entries: tuple[StatementEntry, ...]
    closing_balance: Money
    total_debit: Money
    total_credit: Money

    def newest_first(self) -> tuple[StatementEntry, ...]:
        """Entries in presentation order; balances are not recomputed."""
        return tuple(reversed(self.entries))

    @property
    def balance_side(self) -> str:
        """
        "Dr" when the counterparty owes (or cash is on hand), "Cr" when the
        balance is negative, i.e. the counterparty holds a credit.
        """
        return "Cr" if self.closing_balance.is_negative else "Dr"

    def summary(self) -> StatementSummary:
        return StatementSummary(
            opening_balance=self.opening_balance,
            total_debit=self.total_debit,
            total_credit=self.total_credit,
            closing_balance=self.closing_balance,
            balance_side=self.balance_side,
            entry_count=len(self.entries),
        )

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class DailyTotals:
    """Cash moved on one day."""

    day: date
    incoming: Money
    outgoing: Money
    transaction_count: int

    @property
    def net(self) -> Money:
        return self.incoming - self.outgoing


class LedgerProjector:
    """
    Builds customer statements and daily cash books.

    Contract:
        Pure functions over tuples of frozen LedgerTransaction values.
    Guarantees:
        - Identical input sets (in any order) produce identical statements.
        - Payment allocation never changes balance arithmetic.
    Non-goals:
        - Does not persist statements or balances (see DailyBalanceCarrier).
    """

    def __init__(
        self,
        currency_engine: CurrencyEngine | None = None,
        unit_engine: UnitEngine | None = None,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.currency = currency
        self._money = currency_engine or CurrencyEngine(currency)
        self._units = unit_engine or UnitEngine()

    # ------------------------------------------------------------------
    # Collect / Sort / Accumulate / Classify
    # ------------------------------------------------------------------

    def collect(
        self, source: TransactionSource, scope: LedgerScope
    ) -> tuple[LedgerTransaction, ...]:
        """Snapshot the source's transactions for ``scope``."""
        fetched = tuple(tx for tx in source.fetch_transactions(scope) if scope.contains(tx))
        logger.debug(
            "transactions_collected",
            extra={
                "counterparty_ref": scope.counterparty_ref,
                "start_date": scope.start_date,
                "end_date": scope.end_date,
                "count": len(fetched),
            },
        )
        return fetched

    def sort(self, transactions: Iterable[LedgerTransaction]) -> tuple[LedgerTransaction, ...]:
        """Stable ascending sort by (date, time, sequence)."""
        return tuple(sorted(transactions, key=lambda tx: tx.sort_key))

    def accumulate(
        self,
        transactions: Sequence[LedgerTransaction],
        opening: Money | None = None,
        *,
        cash_view: bool = False,
    ) -> tuple[StatementEntry, ...]:
        """
        Left fold over ``transactions`` in the order given.

        With ``cash_view`` the sides are mirrored: a counterparty credit is
        cash in (added), a counterparty debit is cash out (subtracted).

        Raises:
            DuplicateEntryError: the first time a transaction_id repeats.
        """
        self._check_unique(transactions)
        running = opening if opening is not None else self._zero_for(transactions)
        entries: list[StatementEntry] = []

        for tx in transactions:
            debit, credit = (tx.credit, tx.debit) if cash_view else (tx.debit, tx.credit)
            running = running + debit - credit
            entries.append(
                StatementEntry(
                    transaction=tx,
                    debit=debit,
                    credit=credit,
                    running_balance=running,
                    quantity_display=(
                        self._units.format(tx.quantity) if tx.quantity is not None else None
                    ),
                )
            )

        return tuple(entries)

    def classify_cash(
        self, transactions: Iterable[LedgerTransaction], day: date
    ) -> tuple[LedgerTransaction, ...]:
        """Entries dated ``day`` that actually moved cash."""
        return tuple(
            tx for tx in transactions if tx.occurred_on == day and tx.kind.is_cash_movement
        )

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    @traced_engine("projector", "1.0", fingerprint_fields=("customer_ref", "start_date", "end_date"))
    def build_customer_statement(
        self,
        transactions: Iterable[LedgerTransaction],
        customer_ref: str,
        opening: Money | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> LedgerStatement:
        """
        Customer ledger: invoices debit, payments credit, ascending.

        When ``start_date`` is given, the customer's earlier transactions are
        folded into the opening balance so the first running balance already
        reflects them.
        """
        scope = LedgerScope.for_customer(customer_ref, start_date, end_date)
        own = [tx for tx in transactions if tx.counterparty_ref == customer_ref]
        self._check_unique(own)

        opening = opening if opening is not None else self._zero_for(own)
        if start_date is not None:
            prior = [tx for tx in own if tx.occurred_on < start_date]
            opening = self._money.total([opening, *(tx.signed_amount for tx in prior)])

        in_scope = self.sort(tx for tx in own if scope.contains(tx))
        return self._statement(StatementKind.CUSTOMER, scope, opening, in_scope, cash_view=False)

    @traced_engine("projector", "1.0", fingerprint_fields=("day",))
    def build_daily_statement(
        self,
        transactions: Iterable[LedgerTransaction],
        day: date,
        opening: Money | None = None,
    ) -> LedgerStatement:
        """Cash book for ``day``: opening + incoming - outgoing, ascending."""
        cash = self.sort(self.classify_cash(transactions, day))
        opening = opening if opening is not None else self._zero_for(cash)
        return self._statement(
            StatementKind.DAILY, LedgerScope.for_day(day), opening, cash, cash_view=True
        )

    def project(
        self,
        source: TransactionSource,
        scope: LedgerScope,
        opening: Money | None = None,
    ) -> LedgerStatement:
        """Collect from ``source`` and build a plain statement for ``scope``."""
        ordered = self.sort(self.collect(source, scope))
        opening = opening if opening is not None else self._zero_for(ordered)
        return self._statement(StatementKind.GENERAL, scope, opening, ordered, cash_view=False)

    def daily_totals(self, transactions: Iterable[LedgerTransaction], day: date) -> DailyTotals:
        """Incoming and outgoing cash for ``day``."""
        cash = self.classify_cash(transactions, day)
        self._check_unique(cash)
        zero = self._zero_for(cash)
        return DailyTotals(
            day=day,
            incoming=self._money.total([zero, *(tx.credit for tx in cash)]),
            outgoing=self._money.total([zero, *(tx.debit for tx in cash)]),
            transaction_count=len(cash),
        )

    def filter_statement(
        self,
        statement: LedgerStatement,
        predicate: Callable[[LedgerTransaction], bool],
    ) -> LedgerStatement:
        """
        Keep entries whose transaction satisfies ``predicate`` and recompute
        running balances for the subset from the same opening balance.
        """
        kept = tuple(e.transaction for e in statement.entries if predicate(e.transaction))
        return self._statement(
            statement.kind,
            statement.scope,
            statement.opening_balance,
            kept,
            cash_view=statement.kind is StatementKind.DAILY,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _statement(
        self,
        kind: StatementKind,
        scope: LedgerScope,
        opening: Money,
        ordered: Sequence[LedgerTransaction],
        *,
        cash_view: bool,
    ) -> LedgerStatement:
        entries = self.accumulate(ordered, opening, cash_view=cash_view)
        zero = Money.zero(opening.currency)
        total_debit = self._money.total([zero, *(e.debit for e in entries)])
        total_credit = self._money.total([zero, *(e.credit for e in entries)])
        closing = entries[-1].running_balance if entries else opening

        logger.info(
            "statement_built",
            extra={
                "statement_kind": kind.value,
                "counterparty_ref": scope.counterparty_ref,
                "start_date": scope.start_date,
                "end_date": scope.end_date,
                "entry_count": len(entries),
                "closing_balance": str(closing.amount),
            },
        )

        return LedgerStatement(
            kind=kind,
            scope=scope,
            opening_balance=opening,
            entries=entries,
            closing_balance=closing,
            total_debit=total_debit,
            total_credit=total_credit,
        )

    def _check_unique(self, transactions: Iterable[LedgerTransaction]) -> None:
        seen: set[str] = set()
        for tx in transactions:
            if tx.transaction_id in seen:
                logger.warning(
                    "duplicate_entry_detected",
                    extra={"transaction_id": tx.transaction_id},
                )
                raise DuplicateEntryError(tx.transaction_id)
            seen.add(tx.transaction_id)

    def _zero_for(self, transactions: Sequence[LedgerTransaction]) -> Money:
        if transactions:
            return Money.zero(transactions[0].currency)
        return Money.zero(self.currency)
