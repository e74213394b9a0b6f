"""Read-only query selectors for the ledger kernel."""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.transaction_selector import (
    DailyBalanceSelector,
    TransactionSelector,
)

__all__ = [
    "BaseSelector",
    "DailyBalanceSelector",
    "TransactionSelector",
]
