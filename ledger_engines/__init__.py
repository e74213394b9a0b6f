"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ledger_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel (domain, exceptions, logging_config).
    MUST NOT import ledger_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in by the caller.
    - Integer arithmetic: quantities and money are combined as ints;
      Decimal appears only at the boundary, floats never.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from ledger_engines import UnitEngine, CurrencyEngine, LedgerProjector
"""

from ledger_engines.allocation import (
    AllocationLine,
    AllocationResult,
    InvoiceAllocationEngine,
    InvoiceStatus,
    OpenInvoice,
    invoice_status,
)
from ledger_engines.currency import CurrencyEngine, decompose, round_half_up_div
from ledger_engines.projector import (
    DailyTotals,
    LedgerProjector,
    LedgerStatement,
    StatementEntry,
    StatementKind,
    StatementSummary,
    TransactionSource,
)
from ledger_engines.tracer import compute_input_fingerprint, traced_engine
from ledger_engines.units import (
    UnitEngine,
    add_units,
    compare_units,
    format_quantity,
    has_sufficient_stock,
    parse_quantity,
    subtract_units,
)

__all__ = [
    # Units
    "UnitEngine",
    "add_units",
    "compare_units",
    "format_quantity",
    "has_sufficient_stock",
    "parse_quantity",
    "subtract_units",
    # Currency
    "CurrencyEngine",
    "decompose",
    "round_half_up_div",
    # Projector
    "DailyTotals",
    "LedgerProjector",
    "LedgerStatement",
    "StatementEntry",
    "StatementKind",
    "StatementSummary",
    "TransactionSource",
    # Allocation
    "AllocationLine",
    "AllocationResult",
    "InvoiceAllocationEngine",
    "InvoiceStatus",
    "OpenInvoice",
    "invoice_status",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]
