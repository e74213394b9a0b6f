"""
Pytest fixtures for the steel ledger test suite.

Provides:
- Structured logging configured once per session, with captured_logs
- SQLite-backed database sessions (a fresh file per test)
- Deterministic clock
- Ledger configuration and service factories
- Transaction builders

Environment Variables:
- DATABASE_URL: optional database URL. Tests default to a SQLite file in
  pytest's tmp_path; a PostgreSQL URL runs the same suite against Postgres.
"""

import json
import logging
import os
from collections.abc import Generator
from datetime import date, datetime, time, UTC
from io import StringIO
from itertools import count

import pytest
from sqlalchemy.orm import Session

from ledger_config import get_active_config
from ledger_config.bridges import init_engine_from_config
from ledger_config.schema import LedgerConfig
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.ledger import (
    CounterpartyType,
    LedgerTransaction,
    TransactionKind,
    credit_entry,
    debit_entry,
)
from ledger_kernel.domain.units import UnitKind
from ledger_kernel.domain.values import Money
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_services.daily_balance_service import DailyBalanceCarrier
from ledger_services.transaction_service import TransactionService


SEED_DATE = date(2024, 1, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "statement_built" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url(tmp_path) -> str:
    """Database URL from the environment, or a SQLite file under tmp_path."""
    return os.environ.get("DATABASE_URL", f"sqlite:///{tmp_path / 'ledger_test.db'}")


@pytest.fixture
def db_engine(tmp_path):
    """Engine with all tables created and immutability listeners installed.

    SQLite databases live in tmp_path; every test starts from empty tables.
    """
    eng = init_engine_from_config(get_active_config(), url=get_database_url(tmp_path))
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session that performs real commits."""
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


@pytest.fixture
def session_factory(db_engine):
    """Factory for extra sessions (concurrency tests); all closed at teardown."""
    factory = get_session_factory()
    created: list[Session] = []

    def _make() -> Session:
        s = factory()
        created.append(s)
        return s

    yield _make

    for s in created:
        s.rollback()
        s.close()


# =============================================================================
# Clock / config / services
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-01 12:00 UTC."""
    return DeterministicClock(datetime(2024, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """Default configuration with a 100,000.00 seed on 2024-01-01."""
    base = get_active_config()
    return LedgerConfig(
        config_id="steel-ledger-test",
        version=1,
        currency="PKR",
        seed_opening_balance=Money.of("100000.00"),
        seed_date=SEED_DATE,
        conflict_max_attempts=3,
        default_unit_kind=UnitKind.KG_GRAMS,
        database=base.database,
        checksum=base.checksum,
    )


@pytest.fixture
def carrier(session, ledger_config) -> DailyBalanceCarrier:
    return DailyBalanceCarrier.from_config(session, ledger_config)


@pytest.fixture
def invalidations() -> list:
    """Notices delivered to the transaction service's callback."""
    return []


@pytest.fixture
def transaction_service(session, deterministic_clock, carrier, invalidations):
    return TransactionService(
        session, deterministic_clock, carrier, on_invalidated=invalidations.append
    )


# =============================================================================
# Transaction builders
# =============================================================================


_ids = count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids):05d}"


@pytest.fixture
def make_invoice():
    def _make(
        amount: str,
        occurred_on: date,
        customer_ref: str = "C-001",
        transaction_id: str | None = None,
        **kwargs,
    ) -> LedgerTransaction:
        return debit_entry(
            transaction_id or _next_id("INV"),
            occurred_on,
            TransactionKind.INVOICE,
            Money.of(amount),
            counterparty_ref=customer_ref,
            counterparty_type=CounterpartyType.CUSTOMER,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_payment():
    """Customer payment (credit) by default; ``outgoing=True`` pays a vendor."""

    def _make(
        amount: str,
        occurred_on: date,
        customer_ref: str = "C-001",
        transaction_id: str | None = None,
        outgoing: bool = False,
        **kwargs,
    ) -> LedgerTransaction:
        if outgoing:
            kwargs.setdefault("counterparty_type", CounterpartyType.VENDOR)
            build = debit_entry
        else:
            kwargs.setdefault("counterparty_type", CounterpartyType.CUSTOMER)
            build = credit_entry
        return build(
            transaction_id or _next_id("PAY"),
            occurred_on,
            TransactionKind.PAYMENT,
            Money.of(amount),
            counterparty_ref=customer_ref,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_manual():
    def _make(
        amount: str,
        occurred_on: date,
        income: bool = True,
        transaction_id: str | None = None,
        at: time = time(9, 0),
        **kwargs,
    ) -> LedgerTransaction:
        kind = TransactionKind.MANUAL_INCOME if income else TransactionKind.MANUAL_OUTGOING
        build = credit_entry if income else debit_entry
        return build(
            transaction_id or _next_id("MAN"),
            occurred_on,
            kind,
            Money.of(amount),
            occurred_at=at,
            is_manual=True,
            **kwargs,
        )

    return _make
