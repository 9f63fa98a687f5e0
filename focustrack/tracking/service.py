"""Server-side facade for focus tracking.

Every transition for an owner runs under that owner's lock, then commits
through the store's conditional write.  The lock serialises requests
handled by this process.  The conditional write catches everything else
(other processes, stale reads).  A caller that loses either way gets
``ConflictError``.

``stop`` commits first and aggregates afterwards, still holding the
owner's lock, so a following ``get_daily_stats`` from the same owner
observes the new totals.
"""

from __future__ import annotations

import logging
import threading
import weakref
from datetime import date, datetime
from typing import Callable

from ..database.db import get_session
from ..errors import AggregationError, ConflictError, NotFoundError
from ..settings import Settings
from . import machine
from .aggregator import DailyAggregator, DailySummary
from .machine import Action, Session
from .store import SessionStore


logger = logging.getLogger(__name__)


class FocusService:
    """Start/pause/resume/stop focus sessions and read daily totals."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        store: SessionStore | None = None,
        aggregator: DailyAggregator | None = None,
        lock_timeout: float = 5.0,
    ) -> None:
        self._settings = settings or Settings()
        self._clock = clock
        self._store = store or SessionStore()
        self._aggregator = aggregator or DailyAggregator(
            self._store,
            policy=self._settings.midnight_policy,
            retries=self._settings.aggregation_retries,
            retry_delay=self._settings.aggregation_retry_delay,
        )
        self._lock_timeout = lock_timeout
        # Entries vanish once no request holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    # ── helpers ──────────────────────────────────────────────────────────

    def now(self) -> datetime:
        """Authoritative server time, whole seconds."""
        return self._clock().replace(microsecond=0)

    def today(self) -> date:
        return self.now().date()

    def _lock_for(self, owner: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(owner)
            if lock is None:
                lock = self._locks[owner] = threading.Lock()
            return lock

    def _locked(self, owner: str):
        lock = self._lock_for(owner)
        if not lock.acquire(timeout=self._lock_timeout):
            raise ConflictError(f"another request for {owner} is in progress")
        return lock

    # ── transitions ──────────────────────────────────────────────────────

    def start(self, owner: str, description: object, tags: object = None) -> Session:
        lock = self._locked(owner)
        try:
            session = machine.start(
                owner,
                description,
                tags,
                now=self.now(),
                max_description_length=self._settings.max_description_length,
                max_tags=self._settings.max_tags,
            )
            with get_session() as db:
                active = self._store.get_active(db, owner)
                if active is not None:
                    raise ConflictError(
                        f"{owner} already has an active session ({active.id})"
                    )
                self._store.create(db, session)
        finally:
            lock.release()
        logger.info("Started session %s for %s: %r", session.id, owner, session.description)
        return session

    def pause(self, owner: str) -> Session:
        return self._transition(owner, Action.PAUSE)

    def resume(self, owner: str) -> Session:
        return self._transition(owner, Action.RESUME)

    def stop(self, owner: str) -> Session:
        """Close the active session and fold it into the daily totals.

        If aggregation keeps failing the stop still stands: the session
        is left flagged for :meth:`replay_pending`.
        """
        lock = self._locked(owner)
        try:
            session = self._commit_transition(owner, Action.STOP)
            try:
                self._aggregator.aggregate_session(session.id)
            except AggregationError as exc:
                logger.error("Session %s stopped but not aggregated: %s", session.id, exc)
                return session
            with get_session() as db:
                return self._store.get(db, session.id)
        finally:
            lock.release()

    def _transition(self, owner: str, action: Action) -> Session:
        lock = self._locked(owner)
        try:
            return self._commit_transition(owner, action)
        finally:
            lock.release()

    def _commit_transition(self, owner: str, action: Action) -> Session:
        with get_session() as db:
            before = self._store.get_active(db, owner)
            if before is None:
                raise NotFoundError(f"{owner} has no active session")
            after = machine.apply(before, action, now=self.now())
            after = self._store.save(db, before, after)
        logger.info(
            "Session %s for %s: %s -> %s",
            after.id, owner, before.status.value, after.status.value,
        )
        return after

    # ── reads ────────────────────────────────────────────────────────────

    def get_active_session(self, owner: str) -> Session | None:
        with get_session() as db:
            return self._store.get_active(db, owner)

    def get_session(self, owner: str, session_id: str) -> Session:
        with get_session() as db:
            session = self._store.get(db, session_id)
        if session is None or session.owner != owner:
            raise NotFoundError(f"session {session_id} not found")
        return session

    def list_sessions(
        self, owner: str, *, on_date: date | None = None, limit: int = 20,
    ) -> list[Session]:
        with get_session() as db:
            return self._store.list_for_owner(db, owner, on_date=on_date, limit=limit)

    def get_daily_stats(self, owner: str, day: date | None = None) -> DailySummary:
        """Totals for *day* (server's today by default), open time included."""
        now = self.now()
        with get_session() as db:
            return self._aggregator.daily_summary(db, owner, day or now.date(), now)

    def get_daily_stats_range(
        self, owner: str, start: date, end: date,
    ) -> list[DailySummary]:
        if end < start:
            raise ValueError("end must not be before start")
        now = self.now()
        with get_session() as db:
            return self._aggregator.daily_summaries(db, owner, start, end, now)

    # ── maintenance ──────────────────────────────────────────────────────

    def replay_pending(self) -> list[str]:
        """Re-run aggregation for stopped sessions that never completed it."""
        with get_session() as db:
            pending = [
                self._store.get(db, session_id)
                for session_id in self._store.pending_aggregation(db)
            ]
        done = []
        for session in pending:
            try:
                lock = self._locked(session.owner)
            except ConflictError as exc:
                logger.warning("Replay of %s deferred: %s", session.id, exc)
                continue
            try:
                self._aggregator.aggregate_session(session.id)
            except AggregationError as exc:
                logger.warning("Replay of %s failed again: %s", session.id, exc)
                continue
            finally:
                lock.release()
            done.append(session.id)
        if pending:
            logger.info("Replayed %d of %d pending sessions", len(done), len(pending))
        return done

    def roll_over(self, now: datetime | None = None) -> int:
        """Finalize every share dated before today.

        Returns the number of sessions that received new contributions.
        """
        today = (now or self.now()).date()
        with get_session() as db:
            active = [
                self._store.get(db, session_id)
                for session_id in self._store.active_ids(db)
            ]
        touched = 0
        for session in active:
            try:
                lock = self._locked(session.owner)
            except ConflictError as exc:
                logger.warning("Rollover of %s deferred: %s", session.id, exc)
                continue
            try:
                if self._aggregator.aggregate_session(session.id, before=today):
                    touched += 1
            except AggregationError as exc:
                logger.warning("Rollover of %s failed: %s", session.id, exc)
            finally:
                lock.release()
        touched += len(self.replay_pending())
        logger.info("Day rollover to %s touched %d sessions", today, touched)
        return touched
