"""
Ledger services: the imperative shell that writes ledger state.

    TransactionService   -- records and edits ledger transactions
    DailyBalanceCarrier  -- persisted day-to-day cash balance chain
"""

from ledger_services.base import BaseService
from ledger_services.daily_balance_service import DailyBalanceCarrier
from ledger_services.transaction_service import InvalidationListener, TransactionService

__all__ = [
    "BaseService",
    "DailyBalanceCarrier",
    "InvalidationListener",
    "TransactionService",
]
