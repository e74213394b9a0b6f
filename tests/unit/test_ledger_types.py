"""
Unit tests for the ledger domain types.

Verifies:
- Single-sided entry validation and side rules per kind
- Manual-only mutability and with_changes revalidation
- LedgerScope bounds
- DailyBalance closing identity
- InvalidationNotice construction and merge
"""

from datetime import date, time

import pytest

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
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import TransactionValidationError, ValidationError

DAY = date(2024, 3, 1)


class TestLedgerTransactionValidation:
    def test_debit_entry(self):
        tx = debit_entry("INV-1", DAY, TransactionKind.INVOICE, Money.of("5000.00"))
        assert tx.side is EntrySide.DEBIT
        assert tx.amount == Money.of("5000.00")
        assert tx.gross == Money.of("5000.00")
        assert tx.signed_amount == Money.of("5000.00")
        assert tx.currency == "PKR"

    def test_credit_entry(self):
        tx = credit_entry("PAY-1", DAY, TransactionKind.PAYMENT, Money.of("2000.00"))
        assert tx.side is EntrySide.CREDIT
        assert tx.signed_amount == Money.of("-2000.00")

    def test_both_sides_rejected(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            LedgerTransaction(
                "ADJ-1", DAY, TransactionKind.ADJUSTMENT,
                debit=Money.of("1.00"), credit=Money.of("1.00"),
            )
        assert exc_info.value.field == "amount"
        assert exc_info.value.transaction_id == "ADJ-1"
        assert isinstance(exc_info.value, ValidationError)

    def test_zero_rejected(self):
        with pytest.raises(TransactionValidationError):
            LedgerTransaction("ADJ-1", DAY, TransactionKind.ADJUSTMENT)

    def test_negative_rejected(self):
        with pytest.raises(TransactionValidationError):
            debit_entry("ADJ-1", DAY, TransactionKind.ADJUSTMENT, Money.of("-1.00"))

    def test_currency_mismatch_rejected(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            LedgerTransaction(
                "ADJ-1", DAY, TransactionKind.ADJUSTMENT,
                debit=Money.of("1.00", "PKR"), credit=Money.zero("USD"),
            )
        assert exc_info.value.field == "currency"

    def test_missing_id_rejected(self):
        with pytest.raises(TransactionValidationError):
            debit_entry("  ", DAY, TransactionKind.INVOICE, Money.of("1.00"))

    def test_invoice_must_be_debit(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            credit_entry("INV-1", DAY, TransactionKind.INVOICE, Money.of("1.00"))
        assert exc_info.value.field == "side"

    def test_manual_income_must_be_credit(self):
        with pytest.raises(TransactionValidationError):
            debit_entry("M-1", DAY, TransactionKind.MANUAL_INCOME, Money.of("1.00"), is_manual=True)

    def test_manual_kinds_must_be_manual(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            debit_entry("M-1", DAY, TransactionKind.MANUAL_OUTGOING, Money.of("1.00"))
        assert exc_info.value.field == "is_manual"

    def test_payment_either_side(self):
        debit_entry("PAY-1", DAY, TransactionKind.PAYMENT, Money.of("1.00"))
        credit_entry("PAY-2", DAY, TransactionKind.PAYMENT, Money.of("1.00"))

    def test_only_payments_allocated(self):
        credit_entry(
            "PAY-1", DAY, TransactionKind.PAYMENT, Money.of("1.00"), allocated_invoice_ref="INV-1"
        )
        with pytest.raises(TransactionValidationError):
            debit_entry(
                "INV-2", DAY, TransactionKind.INVOICE, Money.of("1.00"), allocated_invoice_ref="INV-1"
            )

    def test_enum_coercion(self):
        tx = LedgerTransaction(
            "INV-1", DAY, "invoice", debit=Money.of("1.00"), counterparty_type="customer"
        )
        assert tx.kind is TransactionKind.INVOICE
        assert tx.counterparty_type is CounterpartyType.CUSTOMER

    def test_explicit_gross_kept(self):
        tx = debit_entry(
            "INV-1", DAY, TransactionKind.INVOICE, Money.of("900.00"), gross=Money.of("1000.00")
        )
        assert tx.gross == Money.of("1000.00")
        assert tx.amount == Money.of("900.00")


class TestMutability:
    def test_only_manual_entries_mutable(self):
        invoice = debit_entry("INV-1", DAY, TransactionKind.INVOICE, Money.of("1.00"))
        manual = credit_entry(
            "M-1", DAY, TransactionKind.MANUAL_INCOME, Money.of("1.00"), is_manual=True
        )
        assert not invoice.mutable
        assert manual.mutable

    def test_with_changes_recomputes_gross(self):
        manual = credit_entry(
            "M-1", DAY, TransactionKind.MANUAL_INCOME, Money.of("1.00"), is_manual=True
        )
        changed = manual.with_changes(credit=Money.of("7.50"), description="fixed")
        assert changed.gross == Money.of("7.50")
        assert changed.description == "fixed"
        assert manual.credit == Money.of("1.00")

    def test_with_changes_revalidates(self):
        manual = credit_entry(
            "M-1", DAY, TransactionKind.MANUAL_INCOME, Money.of("1.00"), is_manual=True
        )
        with pytest.raises(TransactionValidationError):
            manual.with_changes(credit=Money.zero(), debit=Money.of("1.00"))


class TestOrdering:
    def test_sort_key(self):
        early = debit_entry(
            "INV-1", DAY, TransactionKind.INVOICE, Money.of("1.00"), occurred_at=time(9, 0), sequence=5
        )
        late = debit_entry(
            "INV-2", DAY, TransactionKind.INVOICE, Money.of("1.00"), occurred_at=time(9, 0), sequence=6
        )
        next_day = debit_entry("INV-3", date(2024, 3, 2), TransactionKind.INVOICE, Money.of("1.00"))
        ordered = sorted([next_day, late, early], key=lambda tx: tx.sort_key)
        assert [tx.transaction_id for tx in ordered] == ["INV-1", "INV-2", "INV-3"]

    def test_cash_movement_kinds(self):
        assert TransactionKind.PAYMENT.is_cash_movement
        assert TransactionKind.MANUAL_INCOME.is_cash_movement
        assert TransactionKind.MANUAL_OUTGOING.is_cash_movement
        assert not TransactionKind.INVOICE.is_cash_movement
        assert not TransactionKind.ADJUSTMENT.is_cash_movement


class TestLedgerScope:
    def _tx(self, day, ref="C-1"):
        return debit_entry(
            f"INV-{day.isoformat()}", day, TransactionKind.INVOICE, Money.of("1.00"),
            counterparty_ref=ref,
        )

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            LedgerScope.for_range(date(2024, 3, 2), date(2024, 3, 1))

    def test_for_day(self):
        scope = LedgerScope.for_day(DAY)
        assert scope.contains(self._tx(DAY))
        assert not scope.contains(self._tx(date(2024, 3, 2)))

    def test_for_customer(self):
        scope = LedgerScope.for_customer("C-1", end_date=DAY)
        assert scope.contains(self._tx(DAY))
        assert not scope.contains(self._tx(DAY, ref="C-2"))
        assert not scope.contains(self._tx(date(2024, 3, 2)))

    def test_unbounded(self):
        assert LedgerScope().contains(self._tx(date(1999, 1, 1)))


class TestDailyBalance:
    def test_compute(self):
        balance = DailyBalance.compute(
            DAY, Money.of("100000.00"), Money.of("25000.00"), Money.of("10000.00"), 2
        )
        assert balance.closing_balance == Money.of("115000.00")
        assert balance.net_movement == Money.of("15000.00")
        assert balance.transaction_count == 2

    def test_inconsistent_closing_rejected(self):
        with pytest.raises(ValueError):
            DailyBalance(
                DAY, Money.of("100.00"), Money.of("1.00"), Money.zero(), Money.of("100.00")
            )


class TestInvalidationNotice:
    def test_for_transactions(self):
        invoice = debit_entry(
            "INV-1", date(2024, 3, 2), TransactionKind.INVOICE, Money.of("1.00"),
            counterparty_ref="C-2", counterparty_type=CounterpartyType.CUSTOMER,
        )
        vendor = debit_entry(
            "PAY-1", DAY, TransactionKind.PAYMENT, Money.of("1.00"),
            counterparty_ref="V-1", counterparty_type=CounterpartyType.VENDOR,
        )
        notice = InvalidationNotice.for_transactions(invoice, vendor)
        assert notice.dates == (DAY, date(2024, 3, 2))
        assert notice.customer_refs == ("C-2",)

    def test_merge(self):
        a = InvalidationNotice(dates=(date(2024, 3, 2),), customer_refs=("C-2",))
        b = InvalidationNotice(dates=(DAY, date(2024, 3, 2)), customer_refs=("C-1",))
        merged = a.merge(b)
        assert merged.dates == (DAY, date(2024, 3, 2))
        assert merged.customer_refs == ("C-1", "C-2")

    def test_empty(self):
        assert InvalidationNotice().is_empty
        assert not InvalidationNotice(dates=(DAY,)).is_empty
