"""
Module: ledger_kernel.db.engine
Responsibility: The process-wide SQLAlchemy engine and session factory for
    the ledger store, plus table setup for local use and tests.
Architecture position: Kernel > DB.  May import from db/base.py and
    models/ (for table registration only).  Callers that hold a
    LedgerConfig go through ledger_config.bridges.init_engine_from_config.

Invariants enforced:
    - One engine per process; init_engine_from_url replaces the previous one.
    - Sessions keep loaded rows after commit (expire_on_commit=False).
      DailyBalanceCarrier reloads the rows its compare-and-swap depends on.
    - Server backends run READ COMMITTED; daily balance writes rely on
      version checks rather than stricter isolation.

Failure modes:
    - RuntimeError from get_session/get_session_factory/create_tables when
      no engine has been initialised.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the ledger engine for ``database_url`` and bind the session factory.

    SQLite files get ``check_same_thread=False`` so a session may be used
    from a worker thread; pool sizing applies to server backends.
    """
    global _engine, _SessionFactory

    reset_engine()
    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = create_engine(
            database_url, echo=echo, connect_args={"check_same_thread": False}
        )
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("ledger_engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def _require_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Ledger engine not initialized; call init_engine_from_url() first")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for independent sessions, one per concurrent writer."""
    if _SessionFactory is None:
        raise RuntimeError("Ledger engine not initialized; call init_engine_from_url() first")
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on normal exit, roll back and re-raise otherwise.

    Usage:
        with session_scope() as session:
            TransactionService(session, clock, carrier).record(tx)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("ledger_unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_listeners: bool = True) -> None:
    """Create the ledger tables and, by default, the ORM immutability guard."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(_require_engine())
    if install_listeners:
        from ledger_kernel.db.immutability import register_immutability_listeners

        register_immutability_listeners()
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every ledger table and remove the immutability guard."""
    from ledger_kernel.db.base import Base
    from ledger_kernel.db.immutability import unregister_immutability_listeners

    unregister_immutability_listeners()
    Base.metadata.drop_all(_require_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any, and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
