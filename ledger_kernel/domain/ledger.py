"""
Ledger -- Pure domain types for ledger transactions and day balances.

Responsibility:
    Defines ``LedgerTransaction`` (one invoice, payment, adjustment or manual
    cash entry), the query scope used to collect them, the per-day balance
    value and the invalidation notice returned to callers after a write.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Single-sided entries: exactly one of debit/credit is non-zero and
      neither is negative.
    - Side per kind: INVOICE and MANUAL_OUTGOING are debits, MANUAL_INCOME is
      a credit; PAYMENT and ADJUSTMENT may be either.
    - Mutability: only manual entries are mutable.
    - Debit/credit are from the counterparty-account perspective: a debit
      raises what the counterparty owes, a credit lowers it.

Failure modes:
    - TransactionValidationError from LedgerTransaction.__post_init__.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from enum import Enum

from ledger_kernel.domain.units import Quantity
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import TransactionValidationError


class TransactionKind(str, Enum):
    """Business event a ledger transaction records."""

    INVOICE = "invoice"
    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"
    MANUAL_INCOME = "manual_income"
    MANUAL_OUTGOING = "manual_outgoing"

    @property
    def is_cash_movement(self) -> bool:
        """True for kinds that move cash in or out on the day they occur."""
        return self in _CASH_KINDS


_CASH_KINDS = frozenset(
    {TransactionKind.PAYMENT, TransactionKind.MANUAL_INCOME, TransactionKind.MANUAL_OUTGOING}
)


class CounterpartyType(str, Enum):
    """Who the other side of a transaction is."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    STAFF = "staff"
    NONE = "none"


class EntrySide(str, Enum):
    """Side of a single-sided entry."""

    DEBIT = "debit"
    CREDIT = "credit"


_REQUIRED_SIDE: dict[TransactionKind, EntrySide] = {
    TransactionKind.INVOICE: EntrySide.DEBIT,
    TransactionKind.MANUAL_INCOME: EntrySide.CREDIT,
    TransactionKind.MANUAL_OUTGOING: EntrySide.DEBIT,
}


@dataclass(frozen=True)
class LedgerTransaction:
    """
    One ledger event.

    Contract:
        Frozen dataclass. Built by services from persisted rows or by callers
        recording a new business event.
    Guarantees:
        - Exactly one of debit/credit is non-zero; both non-negative.
        - ``gross`` defaults to the non-zero side.
        - ``sequence`` orders entries that share the same date and time.
    Non-goals:
        - Does not know about running balances (see LedgerProjector).
    """

    transaction_id: str
    occurred_on: date
    kind: TransactionKind
    debit: Money = field(default_factory=Money.zero)
    credit: Money = field(default_factory=Money.zero)
    occurred_at: time = time(0, 0)
    gross: Money | None = None
    counterparty_ref: str | None = None
    counterparty_type: CounterpartyType = CounterpartyType.NONE
    allocated_invoice_ref: str | None = None
    is_manual: bool = False
    category: str = ""
    description: str = ""
    quantity: Quantity | None = None
    sequence: int = 0

    def __post_init__(self) -> None:
        tid = str(self.transaction_id or "")
        if not tid.strip():
            raise TransactionValidationError("<missing>", "transaction_id", "id is required")
        if not isinstance(self.kind, TransactionKind):
            object.__setattr__(self, "kind", TransactionKind(self.kind))
        if not isinstance(self.counterparty_type, CounterpartyType):
            object.__setattr__(self, "counterparty_type", CounterpartyType(self.counterparty_type))

        if self.debit.is_negative or self.credit.is_negative:
            raise TransactionValidationError(tid, "amount", "debit and credit cannot be negative")
        if self.debit.is_zero == self.credit.is_zero:
            raise TransactionValidationError(
                tid, "amount", "exactly one of debit or credit must be non-zero"
            )
        if self.debit.currency != self.credit.currency:
            raise TransactionValidationError(tid, "currency", "debit and credit currencies differ")

        required = _REQUIRED_SIDE.get(self.kind)
        if required is not None and required is not self.side:
            raise TransactionValidationError(
                tid, "side", f"{self.kind.value} must be recorded as a {required.value}"
            )
        if self.allocated_invoice_ref and self.kind is not TransactionKind.PAYMENT:
            raise TransactionValidationError(
                tid, "allocated_invoice_ref", "only payments can be allocated to an invoice"
            )
        if self.kind in (TransactionKind.MANUAL_INCOME, TransactionKind.MANUAL_OUTGOING) and not self.is_manual:
            raise TransactionValidationError(tid, "is_manual", f"{self.kind.value} entries are manual")

        if self.gross is None:
            object.__setattr__(self, "gross", self.amount)

    @property
    def side(self) -> EntrySide:
        return EntrySide.DEBIT if not self.debit.is_zero else EntrySide.CREDIT

    @property
    def amount(self) -> Money:
        """The non-zero side."""
        return self.debit if not self.debit.is_zero else self.credit

    @property
    def signed_amount(self) -> Money:
        """Debit minus credit."""
        return self.debit - self.credit

    @property
    def currency(self) -> str:
        return self.amount.currency

    @property
    def mutable(self) -> bool:
        return self.is_manual

    @property
    def sort_key(self) -> tuple[date, time, int]:
        return (self.occurred_on, self.occurred_at, self.sequence)

    def with_changes(self, **changes) -> LedgerTransaction:
        """Return a validated copy with the given fields replaced."""
        if ("debit" in changes or "credit" in changes) and "gross" not in changes:
            changes["gross"] = None
        return replace(self, **changes)


def debit_entry(
    transaction_id: str,
    occurred_on: date,
    kind: TransactionKind,
    amount: Money,
    **kwargs,
) -> LedgerTransaction:
    """Create a debit transaction."""
    return LedgerTransaction(
        transaction_id=transaction_id,
        occurred_on=occurred_on,
        kind=kind,
        debit=amount,
        credit=Money.zero(amount.currency),
        **kwargs,
    )


def credit_entry(
    transaction_id: str,
    occurred_on: date,
    kind: TransactionKind,
    amount: Money,
    **kwargs,
) -> LedgerTransaction:
    """Create a credit transaction."""
    return LedgerTransaction(
        transaction_id=transaction_id,
        occurred_on=occurred_on,
        kind=kind,
        debit=Money.zero(amount.currency),
        credit=amount,
        **kwargs,
    )


@dataclass(frozen=True)
class LedgerScope:
    """
    What to collect for a statement.

    Any combination of counterparty and inclusive date bounds; ``None`` means
    unbounded.
    """

    counterparty_ref: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError(f"start_date {self.start_date} is after end_date {self.end_date}")

    @classmethod
    def for_customer(
        cls, customer_ref: str, start_date: date | None = None, end_date: date | None = None
    ) -> LedgerScope:
        return cls(counterparty_ref=customer_ref, start_date=start_date, end_date=end_date)

    @classmethod
    def for_day(cls, day: date) -> LedgerScope:
        return cls(start_date=day, end_date=day)

    @classmethod
    def for_range(cls, start_date: date, end_date: date) -> LedgerScope:
        return cls(start_date=start_date, end_date=end_date)

    def contains(self, tx: LedgerTransaction) -> bool:
        if self.counterparty_ref is not None and tx.counterparty_ref != self.counterparty_ref:
            return False
        if self.start_date is not None and tx.occurred_on < self.start_date:
            return False
        if self.end_date is not None and tx.occurred_on > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class DailyBalance:
    """
    Balance carried into and out of one calendar day.

    Guarantees:
        closing_balance == opening_balance + total_incoming - total_outgoing
    """

    ledger_date: date
    opening_balance: Money
    total_incoming: Money
    total_outgoing: Money
    closing_balance: Money
    transaction_count: int = 0

    def __post_init__(self) -> None:
        expected = self.opening_balance + self.total_incoming - self.total_outgoing
        if expected != self.closing_balance:
            raise ValueError(
                f"Daily balance for {self.ledger_date} does not close: "
                f"expected {expected}, got {self.closing_balance}"
            )

    @property
    def net_movement(self) -> Money:
        return self.total_incoming - self.total_outgoing

    @classmethod
    def compute(
        cls,
        ledger_date: date,
        opening_balance: Money,
        total_incoming: Money,
        total_outgoing: Money,
        transaction_count: int = 0,
    ) -> DailyBalance:
        return cls(
            ledger_date=ledger_date,
            opening_balance=opening_balance,
            total_incoming=total_incoming,
            total_outgoing=total_outgoing,
            closing_balance=opening_balance + total_incoming - total_outgoing,
            transaction_count=transaction_count,
        )


@dataclass(frozen=True)
class InvalidationNotice:
    """
    Which derived views a write made stale.

    Returned from every transaction write so the caller can refresh
    dependent views. The engine itself never publishes events.
    """

    dates: tuple[date, ...] = ()
    customer_refs: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.dates and not self.customer_refs

    def merge(self, other: InvalidationNotice) -> InvalidationNotice:
        return InvalidationNotice(
            dates=tuple(sorted(set(self.dates) | set(other.dates))),
            customer_refs=tuple(sorted(set(self.customer_refs) | set(other.customer_refs))),
        )

    @classmethod
    def for_transactions(cls, *transactions: LedgerTransaction) -> InvalidationNotice:
        dates = {tx.occurred_on for tx in transactions}
        refs = {
            tx.counterparty_ref
            for tx in transactions
            if tx.counterparty_ref and tx.counterparty_type is CounterpartyType.CUSTOMER
        }
        return cls(dates=tuple(sorted(dates)), customer_refs=tuple(sorted(refs)))


__all__ = [
    "CounterpartyType",
    "DailyBalance",
    "EntrySide",
    "InvalidationNotice",
    "LedgerScope",
    "LedgerTransaction",
    "TransactionKind",
    "credit_entry",
    "debit_entry",
]
