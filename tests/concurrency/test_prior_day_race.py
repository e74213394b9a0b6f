"""
Concurrency tests for the day a carried opening balance is read from.

A carry reads the previous stored day's closing balance, then writes its
own row.  If another session changes that previous day (or stores a day
in between) before the write, the carry must fail with
ConcurrentBalanceConflictError rather than persist an opening that no
longer matches the prior closing.

Sessions are interleaved on one thread; the competing writer commits from
inside the carrier's first transaction read.
"""

from datetime import date

import pytest
from sqlalchemy import select

from ledger_kernel.exceptions import ConcurrentBalanceConflictError
from ledger_kernel.models.daily_balance import DailyBalanceRecord
from ledger_kernel.selectors.transaction_selector import TransactionSelector
from ledger_services.daily_balance_service import DailyBalanceCarrier
from ledger_services.transaction_service import TransactionService

DAY_0 = date(2024, 1, 1)
DAY_1 = date(2024, 1, 2)
DAY_2 = date(2024, 1, 3)
DAY_3 = date(2024, 1, 4)


def _row(session, day):
    return session.scalar(select(DailyBalanceRecord).where(DailyBalanceRecord.ledger_date == day))


class RacingSource:
    """TransactionSource that lets a competing writer commit on first read."""

    def __init__(self, session, race):
        self._inner = TransactionSelector(session)
        self._race = race

    def fetch_transactions(self, scope):
        if self._race is not None:
            race, self._race = self._race, None
            race()
        return self._inner.fetch_transactions(scope)


@pytest.fixture
def two_carried_days(session, transaction_service, make_payment):
    """1000.00 received on DAY_0 and 500.00 on DAY_1, both carried and committed."""
    transaction_service.record(make_payment("1000.00", DAY_0))
    session.commit()
    transaction_service.record(make_payment("500.00", DAY_1))
    session.commit()


@pytest.fixture
def record_elsewhere(session_factory, ledger_config, deterministic_clock):
    """Record a transaction in its own session and commit it."""

    def _record(tx):
        other = session_factory()
        carrier = DailyBalanceCarrier.from_config(other, ledger_config)
        TransactionService(other, deterministic_clock, carrier).record(tx)
        other.commit()

    return _record


class TestPriorDayChanged:
    def test_retry_keeps_chain_continuous(
        self,
        two_carried_days,
        session_factory,
        ledger_config,
        record_elsewhere,
        make_payment,
        captured_logs,
    ):
        session_b = session_factory()
        source = RacingSource(session_b, lambda: record_elsewhere(make_payment("7000.00", DAY_0)))
        carrier_b = DailyBalanceCarrier.from_config(session_b, ledger_config, source=source)

        carrier_b.carry_with_retry(DAY_1)

        fresh = session_factory()
        day_0, day_1 = _row(fresh, DAY_0), _row(fresh, DAY_1)
        assert day_0.closing_cents == 10_800_000
        assert day_1.opening_cents == day_0.closing_cents
        assert day_1.closing_cents == 10_850_000
        messages = [r["message"] for r in captured_logs()]
        assert "daily_balance_conflict_retry" in messages

    def test_new_day_on_stale_prior_row(
        self,
        two_carried_days,
        session_factory,
        ledger_config,
        record_elsewhere,
        make_payment,
        captured_logs,
    ):
        session_b = session_factory()
        source = RacingSource(session_b, lambda: record_elsewhere(make_payment("7000.00", DAY_1)))
        carrier_b = DailyBalanceCarrier.from_config(session_b, ledger_config, source=source)

        with pytest.raises(ConcurrentBalanceConflictError) as exc_info:
            carrier_b.carry(DAY_2)
        assert exc_info.value.ledger_date == DAY_2.isoformat()
        assert exc_info.value.expected_version is None

        conflicts = [r for r in captured_logs() if r["message"] == "daily_balance_conflict"]
        assert conflicts[0]["error"] == "prior_day_changed"

        session_b.rollback()
        carrier_b.carry(DAY_2)
        session_b.commit()

        fresh = session_factory()
        assert _row(fresh, DAY_1).closing_cents == 10_850_000
        assert _row(fresh, DAY_2).opening_cents == 10_850_000

    def test_untouched_prior_row_does_not_conflict(
        self, two_carried_days, session_factory, ledger_config
    ):
        session_b = session_factory()
        carrier_b = DailyBalanceCarrier.from_config(session_b, ledger_config)

        carrier_b.carry(DAY_2)
        session_b.commit()

        fresh = session_factory()
        assert _row(fresh, DAY_1).version == 1
        assert _row(fresh, DAY_2).opening_cents == _row(fresh, DAY_1).closing_cents


class TestDayInsertedBetween:
    def test_conflict_then_retry(
        self,
        two_carried_days,
        session_factory,
        ledger_config,
        record_elsewhere,
        make_payment,
        captured_logs,
    ):
        session_b = session_factory()
        source = RacingSource(session_b, lambda: record_elsewhere(make_payment("200.00", DAY_2)))
        carrier_b = DailyBalanceCarrier.from_config(session_b, ledger_config, source=source)

        with pytest.raises(ConcurrentBalanceConflictError):
            carrier_b.carry(DAY_3)

        conflicts = [r for r in captured_logs() if r["message"] == "daily_balance_conflict"]
        assert conflicts[0]["error"] == "prior_day_inserted"

        session_b.rollback()
        carrier_b.carry_with_retry(DAY_3)

        fresh = session_factory()
        assert _row(fresh, DAY_2).closing_cents == 10_170_000
        assert _row(fresh, DAY_3).opening_cents == 10_170_000
