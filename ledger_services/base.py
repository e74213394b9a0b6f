"""
BaseService -- abstract base for ledger services.

Responsibility:
    Common constructor and session-handling contract for every service
    that writes ledger state.  Services receive a SQLAlchemy ``Session``
    and persist with ``session.flush()``.

Architecture position:
    Services -- imperative shell over the kernel and engines.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back, with one documented
      exception (``DailyBalanceCarrier.carry_with_retry``) that owns its
      own unit of work.

Failure modes:
    - A subclass that commits mid-operation breaks the atomicity of a
      transaction write and its daily balance carry.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for ledger services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT provide query-only methods; those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
