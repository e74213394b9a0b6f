"""
Pure domain layer.

Immutable value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

SystemClock is the one sanctioned source of wall-clock time.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.ledger import (
    CounterpartyType,
    DailyBalance,
    EntrySide,
    InvalidationNotice,
    LedgerScope,
    LedgerTransaction,
    TransactionKind,
    credit_entry,
    debit_entry,
)
from ledger_kernel.domain.units import Quantity, UnitFamily, UnitKind
from ledger_kernel.domain.values import MONEY_DECIMAL_PLACES, MONEY_SCALE, Money

__all__ = [
    "Clock",
    "CounterpartyType",
    "DailyBalance",
    "DeterministicClock",
    "EntrySide",
    "InvalidationNotice",
    "LedgerScope",
    "LedgerTransaction",
    "MONEY_DECIMAL_PLACES",
    "MONEY_SCALE",
    "Money",
    "Quantity",
    "SystemClock",
    "TransactionKind",
    "UnitFamily",
    "UnitKind",
    "credit_entry",
    "debit_entry",
]
