"""Daily aggregation of closed intervals into per-day totals.

Attribution
-----------
Each interval's seconds go to the calendar date the interval started on.
What happens when an interval runs past midnight is a policy:

``truncate``    (default) only the part before midnight is counted.
``start_date``  the whole interval is credited to its start date.
``split``       every date the interval touches gets its own share.

Idempotence
-----------
Every (interval, date) share that is folded into :class:`DailyStat` is
written to the ``stat_contributions`` ledger in the same transaction.
A share already in the ledger is skipped, so re-running aggregation for
the same session (after a crash, a retry, or a rollover) never counts a
second time.

Scores
------
``productivity_score`` is recomputed from the stored totals after every
change, never adjusted incrementally::

    score = round(100 * work / (work + break))      # 0 when both are 0

Rounding is half-up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session as OrmSession

from ..database.db import get_session
from ..database.models import (
    DailyStat, FocusSession, SessionInterval, StatContribution,
)
from ..errors import AggregationError
from .machine import IntervalKind, SessionStatus
from .store import SessionStore


logger = logging.getLogger(__name__)


# ── pure helpers ─────────────────────────────────────────────────────────


def productivity_score(work_seconds: int, break_seconds: int) -> int:
    """0-100 share of work time, rounded half-up."""
    total = work_seconds + break_seconds
    if total <= 0:
        return 0
    return (200 * work_seconds + total) // (2 * total)


def _next_midnight(moment: datetime) -> datetime:
    return datetime.combine(moment.date() + timedelta(days=1), datetime.min.time())


def _seconds(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


def attribute(
    start: datetime,
    end: datetime,
    policy: str = "truncate",
) -> list[tuple[date, int]]:
    """Split the span ``[start, end)`` into ``(date, seconds)`` shares."""
    end = max(start, end)
    if policy == "start_date":
        return [(start.date(), _seconds(start, end))]
    if policy == "truncate":
        return [(start.date(), _seconds(start, min(end, _next_midnight(start))))]
    if policy == "split":
        shares = []
        cursor = start
        while True:
            boundary = _next_midnight(cursor)
            if end <= boundary:
                shares.append((cursor.date(), _seconds(cursor, end)))
                return shares
            shares.append((cursor.date(), _seconds(cursor, boundary)))
            cursor = boundary
    raise ValueError(f"unknown midnight policy {policy!r}")


# ── result record ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DailySummary:
    owner: str
    date: date
    total_work_seconds: int = 0
    total_break_seconds: int = 0
    session_count: int = 0
    productivity_score: int = 0


def _summary_from_row(row: DailyStat) -> DailySummary:
    return DailySummary(
        owner=row.owner,
        date=row.date,
        total_work_seconds=row.total_work_seconds,
        total_break_seconds=row.total_break_seconds,
        session_count=row.session_count,
        productivity_score=row.productivity_score,
    )


# ── aggregator ───────────────────────────────────────────────────────────


class DailyAggregator:
    """Folds closed intervals into :class:`DailyStat` rows."""

    def __init__(
        self,
        store: SessionStore | None = None,
        *,
        policy: str = "truncate",
        retries: int = 3,
        retry_delay: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store or SessionStore()
        self.policy = policy
        self._retries = max(0, retries)
        self._retry_delay = retry_delay
        self._sleep = sleep

    # ── entry points ─────────────────────────────────────────────────

    def aggregate_session(
        self, session_id: str, *, before: date | None = None,
    ) -> set[date]:
        """Apply every closed, not-yet-applied share of *session_id*.

        With *before*, only shares dated earlier than *before* are
        applied (day rollover for a session that is still open).
        Storage errors are retried with backoff; after the last attempt
        :class:`AggregationError` is raised and nothing is lost, since
        the next replay starts from the ledger.

        Returns the dates that received new contributions.
        """
        attempt = 0
        while True:
            try:
                with get_session() as db:
                    return self._apply(db, session_id, before)
            except DBAPIError as exc:
                if attempt >= self._retries:
                    logger.error(
                        "Aggregation of %s failed after %d attempts: %s",
                        session_id, attempt + 1, exc,
                    )
                    raise AggregationError(session_id, exc) from exc
                delay = self._retry_delay * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Aggregation of %s failed (attempt %d), retrying in %.2fs: %s",
                    session_id, attempt, delay, exc,
                )
                self._sleep(delay)

    # ── reads ────────────────────────────────────────────────────────

    def daily_summary(
        self, db: OrmSession, owner: str, day: date, now: datetime,
    ) -> DailySummary:
        """Stored totals for *day* plus shares not yet applied.

        Unapplied shares come from the owner's active session (its open
        interval counted up to *now*) and from stopped sessions still
        waiting for aggregation.  Nothing is written.
        """
        row = db.query(DailyStat).filter_by(owner=owner, date=day).first()
        base = _summary_from_row(row) if row else DailySummary(owner, day)

        work, brk, sessions = self._unapplied(db, owner, day, now)
        if not (work or brk or sessions):
            return base
        total_work = base.total_work_seconds + work
        total_break = base.total_break_seconds + brk
        return DailySummary(
            owner=owner,
            date=day,
            total_work_seconds=total_work,
            total_break_seconds=total_break,
            session_count=base.session_count + sessions,
            productivity_score=productivity_score(total_work, total_break),
        )

    def daily_summaries(
        self, db: OrmSession, owner: str, start: date, end: date, now: datetime,
    ) -> list[DailySummary]:
        days = (end - start).days
        return [
            self.daily_summary(db, owner, start + timedelta(days=i), now)
            for i in range(days + 1)
        ]

    # ── internals ────────────────────────────────────────────────────

    def _shares(self, interval: SessionInterval, now: datetime) -> list[tuple[date, int]]:
        end = interval.end_time if interval.end_time is not None else now
        return attribute(interval.start_time, end, self.policy)

    def _apply(
        self, db: OrmSession, session_id: str, before: date | None,
    ) -> set[date]:
        session = db.get(FocusSession, session_id)
        if session is None:
            logger.warning("Nothing to aggregate, session %s not found", session_id)
            return set()

        touched: set[date] = set()
        for interval in self._store.interval_rows(db, session_id):
            if interval.end_time is None:
                continue
            for day, seconds in self._shares(interval, interval.end_time):
                if before is not None and day >= before:
                    continue
                if self._apply_share(db, session, interval, day, seconds):
                    touched.add(day)

        if before is None and session.status == SessionStatus.STOPPED.value:
            self._store.mark_aggregated(db, session_id)
        if touched:
            logger.info(
                "Aggregated session %s into %s",
                session_id, ", ".join(sorted(d.isoformat() for d in touched)),
            )
        return touched

    def _apply_share(
        self,
        db: OrmSession,
        session: FocusSession,
        interval: SessionInterval,
        day: date,
        seconds: int,
    ) -> bool:
        already = (
            db.query(StatContribution.id)
            .filter_by(interval_id=interval.id, stat_date=day)
            .first()
        )
        if already is not None:
            return False

        first_for_session = (
            db.query(StatContribution.id)
            .filter_by(session_id=session.id, stat_date=day)
            .first()
        ) is None

        db.add(StatContribution(
            interval_id=interval.id,
            session_id=session.id,
            owner=session.owner,
            stat_date=day,
            kind=interval.kind,
            seconds=seconds,
        ))

        stat = db.query(DailyStat).filter_by(owner=session.owner, date=day).first()
        if stat is None:
            stat = DailyStat(
                owner=session.owner,
                date=day,
                total_work_seconds=0,
                total_break_seconds=0,
                session_count=0,
                productivity_score=0,
            )
            db.add(stat)
        if interval.kind == IntervalKind.WORK.value:
            stat.total_work_seconds += seconds
        else:
            stat.total_break_seconds += seconds
        if first_for_session:
            stat.session_count += 1
        stat.productivity_score = productivity_score(
            stat.total_work_seconds, stat.total_break_seconds,
        )
        db.flush()
        return True

    def _unapplied(
        self, db: OrmSession, owner: str, day: date, now: datetime,
    ) -> tuple[int, int, int]:
        sessions = (
            db.query(FocusSession)
            .filter(
                FocusSession.owner == owner,
                FocusSession.aggregated == False,  # noqa: E712
            )
            .all()
        )
        work = brk = count = 0
        for session in sessions:
            contributed = False
            for interval in self._store.interval_rows(db, session.id):
                for share_day, seconds in self._shares(interval, now):
                    if share_day != day:
                        continue
                    applied = (
                        db.query(StatContribution.id)
                        .filter_by(interval_id=interval.id, stat_date=day)
                        .first()
                    )
                    if applied is not None:
                        continue
                    contributed = True
                    if interval.kind == IntervalKind.WORK.value:
                        work += seconds
                    else:
                        brk += seconds
            if contributed:
                counted = (
                    db.query(StatContribution.id)
                    .filter_by(session_id=session.id, stat_date=day)
                    .first()
                )
                if counted is None:
                    count += 1
        return work, brk, count
