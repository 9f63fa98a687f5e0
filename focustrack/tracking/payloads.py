"""Response payloads exchanged with the client.

Sessions go out with their full interval log plus the elapsed totals at
``serverTime``, so a client can rebase its local clock from one
response.  Timestamps are ISO-8601 strings.
"""

from __future__ import annotations

from datetime import date, datetime

from .aggregator import DailySummary
from .elapsed import elapsed
from .machine import Interval, IntervalKind, Session, SessionStatus


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def session_to_dict(session: Session, now: datetime) -> dict:
    totals = elapsed(session.intervals, now)
    return {
        "id": session.id,
        "owner": session.owner,
        "description": session.description,
        "tags": list(session.tags),
        "status": session.status.value,
        "intervals": [
            {"kind": iv.kind.value, "start": _iso(iv.start), "end": _iso(iv.end)}
            for iv in session.intervals
        ],
        "createdAt": _iso(session.created_at),
        "stoppedAt": _iso(session.stopped_at),
        "version": session.version,
        "workSeconds": totals.work_seconds,
        "breakSeconds": totals.break_seconds,
        "totalElapsedSeconds": totals.total_seconds,
        "serverTime": _iso(now),
    }


def session_from_dict(data: dict) -> Session:
    return Session(
        id=data["id"],
        owner=data["owner"],
        description=data["description"],
        tags=tuple(data.get("tags") or ()),
        status=SessionStatus(data["status"]),
        intervals=tuple(
            Interval(IntervalKind(iv["kind"]), _parse(iv["start"]), _parse(iv.get("end")))
            for iv in data.get("intervals", ())
        ),
        created_at=_parse(data.get("createdAt")),
        stopped_at=_parse(data.get("stoppedAt")),
        version=data.get("version", 1),
    )


def summary_to_dict(summary: DailySummary) -> dict:
    return {
        "owner": summary.owner,
        "date": summary.date.isoformat(),
        "totalWorkSeconds": summary.total_work_seconds,
        "totalBreakSeconds": summary.total_break_seconds,
        "sessionCount": summary.session_count,
        "productivityScore": summary.productivity_score,
    }


def summary_from_dict(data: dict) -> DailySummary:
    return DailySummary(
        owner=data["owner"],
        date=date.fromisoformat(data["date"]),
        total_work_seconds=data.get("totalWorkSeconds", 0),
        total_break_seconds=data.get("totalBreakSeconds", 0),
        session_count=data.get("sessionCount", 0),
        productivity_score=data.get("productivityScore", 0),
    )
