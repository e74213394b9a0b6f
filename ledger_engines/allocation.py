"""
Module: ledger_engines.allocation
Responsibility:
    Allocate a customer payment (or an available customer credit) across
    that customer's open invoices, oldest first, and report each invoice's
    resulting payment status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.domain and sibling engine modules.

Invariants enforced:
    - Conservation: total_allocated + unallocated == amount.
    - No over-allocation: an invoice never receives more than its balance due.
    - FIFO: open invoices are funded in (issued_on, sequence, invoice_ref)
      order; an explicitly referenced invoice is funded first.
    - Ledger neutrality: allocation is a cross-reference for the invoice
      balance collaborator.  It never changes ledger balance arithmetic.

Failure modes:
    - CurrencyMismatchError if invoices and amount use different currencies.
    - ValueError on a negative amount.

Usage:
    from ledger_engines.allocation import InvoiceAllocationEngine, OpenInvoice

    engine = InvoiceAllocationEngine()
    result = engine.allocate(
        amount=Money.of("2000.00"),
        invoices=[OpenInvoice("I-1", date(2024, 1, 1), Money.of("5000.00"))],
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from ledger_engines.projector import LedgerStatement
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.ledger import LedgerTransaction, TransactionKind
from ledger_kernel.domain.values import Money
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


class InvoiceStatus(str, Enum):
    """Payment status of an invoice."""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERPAID = "overpaid"


def invoice_status(invoice_total: Money, paid: Money) -> InvoiceStatus:
    """Status of an invoice given how much has been paid against it."""
    if paid.is_zero or paid.is_negative:
        return InvoiceStatus.PAID if invoice_total.is_zero else InvoiceStatus.UNPAID
    if paid < invoice_total:
        return InvoiceStatus.PARTIALLY_PAID
    if paid == invoice_total:
        return InvoiceStatus.PAID
    return InvoiceStatus.OVERPAID


@dataclass(frozen=True)
class OpenInvoice:
    """
    An invoice that may receive an allocation.

    Guarantees:
        - ``balance_due`` is never negative.
    """

    invoice_ref: str
    issued_on: date
    total: Money
    paid: Money | None = None
    sequence: int = 0

    def __post_init__(self) -> None:
        if self.paid is None:
            object.__setattr__(self, "paid", Money.zero(self.total.currency))

    @property
    def balance_due(self) -> Money:
        due = self.total - self.paid
        return due if due.is_positive else Money.zero(self.total.currency)

    @property
    def status(self) -> InvoiceStatus:
        return invoice_status(self.total, self.paid)

    @property
    def sort_key(self) -> tuple[date, int, str]:
        return (self.issued_on, self.sequence, self.invoice_ref)


@dataclass(frozen=True)
class AllocationLine:
    """
    Outcome for one invoice.

    Guarantees:
        - ``allocated + remaining_due == balance due before allocation``.
    """

    invoice_ref: str
    allocated: Money
    remaining_due: Money
    status: InvoiceStatus

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining_due.is_zero


@dataclass(frozen=True)
class AllocationResult:
    """
    Complete allocation result.

    Guarantees:
        - ``total_allocated + unallocated == amount``.
    """

    amount: Money
    lines: tuple[AllocationLine, ...]
    total_allocated: Money
    unallocated: Money
    preferred_invoice_ref: str | None = None
    skipped: tuple[str, ...] = field(default=())

    @property
    def is_fully_allocated(self) -> bool:
        return self.unallocated.is_zero

    @property
    def allocation_count(self) -> int:
        return sum(1 for line in self.lines if not line.allocated.is_zero)

    def for_invoice(self, invoice_ref: str) -> AllocationLine | None:
        for line in self.lines:
            if line.invoice_ref == invoice_ref:
                return line
        return None


class InvoiceAllocationEngine:
    """
    FIFO payment-to-invoice allocation.

    Contract:
        Pure functions; no I/O, no database access.
    Guarantees:
        - Sequential allocation: each invoice receives
          ``min(remaining amount, balance due)``.
        - Deterministic ordering for identical inputs.
    Non-goals:
        - Does not update invoice balances; callers persist the lines.
    """

    @traced_engine("allocation", "1.0", fingerprint_fields=("amount", "preferred_invoice_ref"))
    def allocate(
        self,
        amount: Money,
        invoices: Sequence[OpenInvoice],
        preferred_invoice_ref: str | None = None,
    ) -> AllocationResult:
        """
        Allocate ``amount`` across ``invoices``.

        Args:
            amount: Payment or available credit to distribute.
            invoices: Candidate invoices (any order).
            preferred_invoice_ref: Invoice to fund first, if any.
        """
        if amount.is_negative:
            raise ValueError(f"Cannot allocate a negative amount: {amount}")

        logger.info(
            "allocation_started",
            extra={
                "amount": str(amount.amount),
                "currency": amount.currency,
                "invoice_count": len(invoices),
                "preferred_invoice_ref": preferred_invoice_ref,
            },
        )

        ordered = sorted(invoices, key=lambda inv: inv.sort_key)
        if preferred_invoice_ref is not None:
            ordered.sort(key=lambda inv: inv.invoice_ref != preferred_invoice_ref)

        remaining = amount
        lines: list[AllocationLine] = []
        skipped: list[str] = []

        for invoice in ordered:
            due = invoice.balance_due
            if due.is_zero:
                skipped.append(invoice.invoice_ref)
                continue

            to_allocate = due if due <= remaining else remaining
            remaining = remaining - to_allocate
            paid_after = invoice.paid + to_allocate
            lines.append(
                AllocationLine(
                    invoice_ref=invoice.invoice_ref,
                    allocated=to_allocate,
                    remaining_due=due - to_allocate,
                    status=invoice_status(invoice.total, paid_after),
                )
            )

        total_allocated = amount - remaining

        logger.info(
            "allocation_completed",
            extra={
                "amount": str(amount.amount),
                "total_allocated": str(total_allocated.amount),
                "unallocated": str(remaining.amount),
                "invoices_funded": sum(1 for line in lines if not line.allocated.is_zero),
            },
        )

        return AllocationResult(
            amount=amount,
            lines=tuple(lines),
            total_allocated=total_allocated,
            unallocated=remaining,
            preferred_invoice_ref=preferred_invoice_ref,
            skipped=tuple(skipped),
        )

    def allocate_payment(
        self, payment: LedgerTransaction, invoices: Sequence[OpenInvoice]
    ) -> AllocationResult:
        """
        Allocate a recorded payment, honouring its ``allocated_invoice_ref``.

        A payment without a reference is an advance against the customer's
        overall balance and is spread FIFO.
        """
        if payment.kind is not TransactionKind.PAYMENT:
            raise ValueError(f"{payment.transaction_id} is not a payment")
        return self.allocate(
            payment.amount,
            invoices,
            preferred_invoice_ref=payment.allocated_invoice_ref,
        )

    def available_credit(self, statement: LedgerStatement) -> Money:
        """
        Credit a customer holds, i.e. the negated closing balance when the
        statement closes on the credit side; zero otherwise.
        """
        closing = statement.closing_balance
        return -closing if closing.is_negative else Money.zero(closing.currency)

    def allocate_customer_credit(
        self, statement: LedgerStatement, invoices: Sequence[OpenInvoice]
    ) -> AllocationResult:
        """Apply a customer's available credit to their open invoices."""
        return self.allocate(self.available_credit(statement), invoices)
