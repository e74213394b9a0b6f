"""
DailyBalanceCarrier -- persisted day-to-day cash balance chain.

Responsibility:
    Computes each day's opening, incoming, outgoing and closing cash, and
    stores the result as one DailyBalanceRecord per day.  A day's opening
    balance is the previous day's closing balance; the first tracked day
    (the configured seed date) opens at the configured seed balance.

Architecture position:
    Services -- imperative shell.  Reads transactions through a
    TransactionSource (TransactionSelector by default), delegates the cash
    arithmetic to LedgerProjector, and writes daily_balances rows.

Invariants enforced:
    - Day chain: opening(d + 1) == closing(d) for every carried day.
    - Balance: closing == opening + incoming - outgoing (DailyBalance).
    - Compare-and-swap: every carry of an existing row updates it with
      ``WHERE version = <version read>``; a lost race never overwrites the
      winner's row silently.
    - The stored day an opening balance was read from is part of the same
      compare-and-swap: it is touched with its read version before the
      write, and must still be the latest stored day afterwards.
    - Days before the seed date are not tracked; the seed balance already
      accounts for them.

Failure modes:
    - ConcurrentBalanceConflictError when another transaction updated or
      inserted the same day, or changed the day its opening came from,
      between our read and our flush.  The session must be rolled back
      before it can be reused.
    - ValueError when asked to carry a day before the seed date.

Usage:
    carrier = DailyBalanceCarrier.from_config(session, get_active_config())
    carrier.carry_forward(date(2024, 3, 1))     # flushes, caller commits
    carrier.carry_with_retry(date(2024, 3, 1))  # owns its unit of work
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_config.bridges import build_projector
from ledger_config.schema import LedgerConfig
from ledger_engines.projector import LedgerProjector, TransactionSource
from ledger_kernel.domain.ledger import DailyBalance, LedgerScope, LedgerTransaction
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import ConcurrentBalanceConflictError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.daily_balance import DailyBalanceRecord
from ledger_kernel.selectors.transaction_selector import (
    DailyBalanceSelector,
    TransactionSelector,
)
from ledger_services.base import BaseService

logger = get_logger("services.daily_balance")

_ONE_DAY = timedelta(days=1)

DEFAULT_MAX_ATTEMPTS = 3


def _days(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += _ONE_DAY


class DailyBalanceCarrier(BaseService):
    """
    Carries the daily cash balance forward, one persisted row per day.

    Contract:
        ``carry`` and ``carry_forward`` flush within the caller's
        transaction.  ``carry_with_retry`` is the only method that commits
        or rolls back.

    Guarantees:
        - Recomputing day ``d`` and then every later tracked day leaves the
          stored chain consistent.
        - Read-only methods (``opening_balance_for``, ``closing_balance_for``,
          ``chain``) never write.
    """

    def __init__(
        self,
        session: Session,
        seed_balance: Money,
        seed_date: date,
        source: TransactionSource | None = None,
        projector: LedgerProjector | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        super().__init__(session)
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.seed_balance = seed_balance
        self.seed_date = seed_date
        self.max_attempts = max_attempts
        self._source = source if source is not None else TransactionSelector(session)
        self._projector = projector or LedgerProjector(currency=seed_balance.currency)
        self._balances = DailyBalanceSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: LedgerConfig,
        source: TransactionSource | None = None,
        projector: LedgerProjector | None = None,
    ) -> DailyBalanceCarrier:
        return cls(
            session,
            seed_balance=config.seed_opening_balance,
            seed_date=config.seed_date,
            source=source,
            projector=projector or build_projector(config),
            max_attempts=config.conflict_max_attempts,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def opening_balance_for(self, day: date) -> Money:
        """
        Opening cash for ``day``.

        Starts from the latest stored day before ``day`` (or the seed) and
        adds the net cash movement of any untracked days in between.
        """
        opening, _ = self._opening_with_basis(day)
        return opening

    def closing_balance_for(self, day: date) -> Money:
        totals = self._totals_for(day)
        return self.opening_balance_for(day) + totals.net

    def balance_for(self, day: date) -> DailyBalance:
        """Computed (not stored) balance for one day."""
        totals = self._totals_for(day)
        return DailyBalance.compute(
            ledger_date=day,
            opening_balance=self.opening_balance_for(day),
            total_incoming=totals.incoming,
            total_outgoing=totals.outgoing,
            transaction_count=totals.transaction_count,
        )

    def chain(self, start: date, end: date) -> list[DailyBalance]:
        """
        Computed balances for every day in ``[start, end]``, ascending.

        Read-only: nothing is persisted.
        """
        if end < start:
            raise ValueError(f"end {end} precedes start {start}")
        start = max(start, self.seed_date)
        if end < start:
            return []

        by_day = self._cash_by_day(start, end)
        opening = self.opening_balance_for(start)
        balances: list[DailyBalance] = []
        for day in _days(start, end):
            totals = self._projector.daily_totals(by_day.get(day, ()), day)
            balance = DailyBalance.compute(
                ledger_date=day,
                opening_balance=opening,
                total_incoming=totals.incoming,
                total_outgoing=totals.outgoing,
                transaction_count=totals.transaction_count,
            )
            balances.append(balance)
            opening = balance.closing_balance
        return balances

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def carry(self, day: date) -> DailyBalance:
        """
        Recompute ``day`` and upsert its stored row.

        The row for ``day`` and the stored day its opening balance was read
        from are both checked at flush time.  Either one changing after it
        was read is a lost race.

        Raises:
            ConcurrentBalanceConflictError: the row or its prior day changed
                under us.
        """
        if day < self.seed_date:
            raise ValueError(f"{day} is before the seed date {self.seed_date}")

        with LogContext.bind(ledger_date=day.isoformat()):
            record = self.session.scalar(
                select(DailyBalanceRecord).where(DailyBalanceRecord.ledger_date == day)
            )
            expected_version = record.version if record is not None else None

            opening, basis = self._opening_with_basis(day)
            totals = self._totals_for(day)
            balance = DailyBalance.compute(
                ledger_date=day,
                opening_balance=opening,
                total_incoming=totals.incoming,
                total_outgoing=totals.outgoing,
                transaction_count=totals.transaction_count,
            )

            # Prior day first, then this day: the same lock order as carry_forward.
            if not self._lock_basis(basis):
                self._log_conflict(day, expected_version, "prior_day_changed")
                raise ConcurrentBalanceConflictError(day.isoformat(), expected_version)

            if record is None:
                record = DailyBalanceRecord.from_dto(balance)
                record.version = 1
                self.session.add(record)
            else:
                record.apply_dto(balance)
                record.version = expected_version + 1

            try:
                self.session.flush()
            except (StaleDataError, IntegrityError) as exc:
                self._log_conflict(day, expected_version, type(exc).__name__)
                raise ConcurrentBalanceConflictError(day.isoformat(), expected_version) from exc

            if not self._basis_is_latest(day, basis):
                self._log_conflict(day, expected_version, "prior_day_inserted")
                raise ConcurrentBalanceConflictError(day.isoformat(), expected_version)

            logger.debug(
                "daily_balance_carried",
                extra={
                    "ledger_date": day.isoformat(),
                    "opening_cents": balance.opening_balance.cents,
                    "closing_cents": balance.closing_balance.cents,
                    "version": record.version,
                },
            )
            return balance

    def carry_forward(self, from_day: date, through_day: date | None = None) -> list[DailyBalance]:
        """
        Carry every day from ``from_day`` onward, in order.

        The carry runs through the later of ``through_day`` and the last
        tracked day, so a change on ``from_day`` reaches every later stored
        balance and no stored row is left stale behind it.
        """
        start = max(from_day, self.seed_date)
        tracked = self._balances.tracked_dates_from(start)
        candidates = [start]
        if tracked:
            candidates.append(tracked[-1])
        if through_day is not None:
            candidates.append(through_day)
        through_day = max(candidates)

        carried = [self.carry(day) for day in _days(start, through_day)]
        logger.info(
            "daily_balances_carried_forward",
            extra={
                "from_date": start.isoformat(),
                "through_date": through_day.isoformat(),
                "days": len(carried),
            },
        )
        return carried

    def carry_with_retry(
        self, day: date, max_attempts: int | None = None
    ) -> list[DailyBalance]:
        """
        ``carry_forward(day)`` as its own unit of work.

        Commits on success.  On a conflict the session is rolled back, so
        the next attempt re-reads the chain from the database.
        """
        attempts = max_attempts or self.max_attempts
        attempt = 1
        while True:
            try:
                carried = self.carry_forward(day)
                self.session.commit()
                return carried
            except ConcurrentBalanceConflictError as exc:
                self.session.rollback()
                if attempt >= attempts:
                    logger.error(
                        "daily_balance_conflict_exhausted",
                        extra={"ledger_date": day.isoformat(), "attempts": attempt},
                    )
                    raise
                logger.warning(
                    "daily_balance_conflict_retry",
                    extra={
                        "ledger_date": exc.ledger_date,
                        "attempt": attempt,
                        "max_attempts": attempts,
                    },
                )
                attempt += 1

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _opening_with_basis(self, day: date) -> tuple[Money, tuple[date, int] | None]:
        """Opening cash for ``day`` and the (date, version) of the row it came from."""
        if day <= self.seed_date:
            return self.seed_balance, None

        prior = self._balances.latest_record_before(day)
        if prior is None or prior.ledger_date < self.seed_date:
            basis = None
            base_date, base = self.seed_date, self.seed_balance
        else:
            basis = (prior.ledger_date, prior.version)
            base_date = prior.ledger_date + _ONE_DAY
            base = Money(int(prior.closing_cents), prior.currency)

        last = day - _ONE_DAY
        if base_date > last:
            return base, basis
        return base + self._net_movement(base_date, last), basis

    def _lock_basis(self, basis: tuple[date, int] | None) -> bool:
        """
        Touch the prior row with ``WHERE version = <version read>``.

        False when the row moved on since it was read.  On success the row
        stays write-locked until our transaction ends.
        """
        if basis is None:
            return True
        basis_date, basis_version = basis
        result = self.session.execute(
            update(DailyBalanceRecord)
            .where(DailyBalanceRecord.ledger_date == basis_date)
            .where(DailyBalanceRecord.version == basis_version)
            .values(version=DailyBalanceRecord.version)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _basis_is_latest(self, day: date, basis: tuple[date, int] | None) -> bool:
        """No stored day appeared between the prior row and ``day``."""
        if day <= self.seed_date:
            return True
        return self._balances.version_stamp_before(day, not_before=self.seed_date) == basis

    def _log_conflict(self, day: date, expected_version: int | None, error: str) -> None:
        logger.warning(
            "daily_balance_conflict",
            extra={
                "ledger_date": day.isoformat(),
                "expected_version": expected_version,
                "error": error,
            },
        )

    def _totals_for(self, day: date):
        transactions = self._source.fetch_transactions(LedgerScope.for_day(day))
        return self._projector.daily_totals(transactions, day)

    def _cash_by_day(self, start: date, end: date) -> dict[date, list[LedgerTransaction]]:
        by_day: dict[date, list[LedgerTransaction]] = defaultdict(list)
        for tx in self._source.fetch_transactions(LedgerScope.for_range(start, end)):
            if start <= tx.occurred_on <= end:
                by_day[tx.occurred_on].append(tx)
        return by_day

    def _net_movement(self, start: date, end: date) -> Money:
        net = Money.zero(self.seed_balance.currency)
        for day, transactions in self._cash_by_day(start, end).items():
            net = net + self._projector.daily_totals(transactions, day).net
        return net
