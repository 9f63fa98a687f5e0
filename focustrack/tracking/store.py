"""Session store: maps :class:`~.machine.Session` records to ORM rows.

All methods take an open ORM session so the caller decides the
transaction boundary (see :func:`focustrack.database.get_session`).

Writes are conditional.  ``create`` relies on the UNIQUE ``active_owner``
column, ``save`` on a compare-and-swap of ``version`` and ``status``.
A writer that loses either race gets ``ConflictError`` and its
transaction is rolled back by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as OrmSession

from ..database.models import FocusSession, SessionInterval
from ..errors import ConflictError
from .machine import (
    ACTIVE_STATUSES, Interval, IntervalKind, Session, SessionStatus,
)


logger = logging.getLogger(__name__)


def _to_record(row: FocusSession) -> Session:
    return Session(
        id=row.id,
        owner=row.owner,
        description=row.description,
        tags=tuple(row.tags or ()),
        status=SessionStatus(row.status),
        intervals=tuple(
            Interval(IntervalKind(iv.kind), iv.start_time, iv.end_time)
            for iv in row.intervals
        ),
        created_at=row.created_at,
        stopped_at=row.stopped_at,
        version=row.version,
        aggregated=row.aggregated,
    )


def _active_slot(session: Session) -> str | None:
    return session.owner if session.status in ACTIVE_STATUSES else None


class SessionStore:
    """Authoritative persistence of focus sessions."""

    # ── reads ─────────────────────────────────────────────────────────

    def get(self, db: OrmSession, session_id: str) -> Session | None:
        row = db.get(FocusSession, session_id)
        return _to_record(row) if row is not None else None

    def get_active(self, db: OrmSession, owner: str) -> Session | None:
        row = (
            db.query(FocusSession)
            .filter(FocusSession.active_owner == owner)
            .first()
        )
        return _to_record(row) if row is not None else None

    def list_for_owner(
        self,
        db: OrmSession,
        owner: str,
        *,
        on_date: date | None = None,
        limit: int = 20,
    ) -> list[Session]:
        query = db.query(FocusSession).filter(FocusSession.owner == owner)
        if on_date is not None:
            day_start = datetime.combine(on_date, time.min)
            query = query.filter(
                FocusSession.created_at >= day_start,
                FocusSession.created_at < day_start + timedelta(days=1),
            )
        rows = query.order_by(FocusSession.created_at.desc()).limit(limit).all()
        return [_to_record(r) for r in rows]

    def pending_aggregation(self, db: OrmSession) -> list[str]:
        """Ids of stopped sessions whose contribution is not yet applied."""
        rows = (
            db.query(FocusSession.id)
            .filter(
                FocusSession.status == SessionStatus.STOPPED.value,
                FocusSession.aggregated == False,  # noqa: E712
            )
            .order_by(FocusSession.stopped_at)
            .all()
        )
        return [r.id for r in rows]

    def active_ids(self, db: OrmSession) -> list[str]:
        rows = (
            db.query(FocusSession.id)
            .filter(FocusSession.active_owner.isnot(None))
            .all()
        )
        return [r.id for r in rows]

    def interval_rows(self, db: OrmSession, session_id: str) -> list[SessionInterval]:
        return (
            db.query(SessionInterval)
            .filter(SessionInterval.session_id == session_id)
            .order_by(SessionInterval.seq)
            .all()
        )

    # ── writes ────────────────────────────────────────────────────────

    def create(self, db: OrmSession, session: Session) -> Session:
        """Insert a new session; ``ConflictError`` if one is active."""
        row = FocusSession(
            id=session.id,
            owner=session.owner,
            description=session.description,
            tags=list(session.tags),
            status=session.status.value,
            created_at=session.created_at,
            stopped_at=session.stopped_at,
            version=session.version,
            active_owner=_active_slot(session),
            aggregated=False,
        )
        for seq, interval in enumerate(session.intervals):
            row.intervals.append(SessionInterval(
                seq=seq,
                kind=interval.kind.value,
                start_time=interval.start,
                end_time=interval.end,
            ))
        db.add(row)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"{session.owner} already has an active session"
            ) from exc
        return session

    def save(self, db: OrmSession, before: Session, after: Session) -> Session:
        """Persist *after* only if the row still matches *before*.

        Returns *after* with its new version.
        """
        result = db.execute(
            update(FocusSession)
            .where(
                FocusSession.id == before.id,
                FocusSession.version == before.version,
                FocusSession.status == before.status.value,
            )
            .values(
                status=after.status.value,
                stopped_at=after.stopped_at,
                active_owner=_active_slot(after),
                version=before.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"session {before.id} was changed by a concurrent request"
            )

        rows = self.interval_rows(db, before.id)
        for seq, interval in enumerate(after.intervals):
            if seq < len(rows):
                if rows[seq].end_time != interval.end:
                    rows[seq].end_time = interval.end
            else:
                db.add(SessionInterval(
                    session_id=before.id,
                    seq=seq,
                    kind=interval.kind.value,
                    start_time=interval.start,
                    end_time=interval.end,
                ))
        db.flush()
        # Later reads in this transaction must see the new row state.
        db.expire_all()

        logger.debug("Saved %s v%d -> v%d", before.id, before.version, before.version + 1)
        return replace(after, version=before.version + 1)

    def mark_aggregated(self, db: OrmSession, session_id: str) -> None:
        row = db.get(FocusSession, session_id)
        if row is not None:
            row.aggregated = True
