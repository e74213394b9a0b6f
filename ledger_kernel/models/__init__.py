"""ORM models for the ledger kernel."""

from ledger_kernel.models.daily_balance import DailyBalanceRecord
from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord

__all__ = [
    "DailyBalanceRecord",
    "LedgerTransactionRecord",
]
