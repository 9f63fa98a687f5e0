"""Focus-session state machine.

States
------
NO ACTIVE     No record exists, or the owner's last session is STOPPED.
RUNNING       A work interval is open.
PAUSED        A break interval is open.
STOPPED       Terminal.  Every interval is closed; the log is frozen.

Transitions
-----------
NO ACTIVE → RUNNING      (start)   opens a work interval
RUNNING   → PAUSED       (pause)   closes work, opens break
PAUSED    → RUNNING      (resume)  closes break, opens work
RUNNING   → STOPPED      (stop)    closes the open interval
PAUSED    → STOPPED      (stop)    closes the open interval

Everything here is pure: functions take a :class:`Session` and the
server's ``now`` and return a new :class:`Session`.  Nothing is stored
and the input record is never modified.  "Is there already an active
session for this owner?" is a storage question answered by the caller.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ..errors import InvalidStateError, ValidationError


# ── enums ─────────────────────────────────────────────────────────────────


class SessionStatus(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class IntervalKind(Enum):
    WORK = "work"
    BREAK = "break"


class Action(Enum):
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


ACTIVE_STATUSES = frozenset({SessionStatus.RUNNING, SessionStatus.PAUSED})

# (current status, action) → (new status, kind of interval to open or None)
TRANSITIONS: dict[tuple[SessionStatus, Action], tuple[SessionStatus, IntervalKind | None]] = {
    (SessionStatus.RUNNING, Action.PAUSE): (SessionStatus.PAUSED, IntervalKind.BREAK),
    (SessionStatus.PAUSED, Action.RESUME): (SessionStatus.RUNNING, IntervalKind.WORK),
    (SessionStatus.RUNNING, Action.STOP): (SessionStatus.STOPPED, None),
    (SessionStatus.PAUSED, Action.STOP): (SessionStatus.STOPPED, None),
}


# ── records ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Interval:
    kind: IntervalKind
    start: datetime
    end: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def closed_at(self, now: datetime) -> "Interval":
        # A clock that stepped backwards must not produce negative spans.
        return replace(self, end=max(now, self.start))


@dataclass(frozen=True)
class Session:
    """A focus session and its interval log."""

    id: str
    owner: str
    description: str
    tags: tuple[str, ...] = ()
    status: SessionStatus = SessionStatus.RUNNING
    intervals: tuple[Interval, ...] = ()
    created_at: datetime | None = None
    stopped_at: datetime | None = None
    version: int = 1
    aggregated: bool = False

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def open_interval(self) -> Interval | None:
        if self.intervals and self.intervals[-1].is_open:
            return self.intervals[-1]
        return None


# ── validation ────────────────────────────────────────────────────────────


def clean_description(description: object, max_length: int = 255) -> str:
    if not isinstance(description, str) or not description.strip():
        raise ValidationError("description is required")
    description = description.strip()
    if len(description) > max_length:
        raise ValidationError(
            f"description is longer than {max_length} characters"
        )
    return description


def clean_tags(tags: object, max_tags: int = 20) -> tuple[str, ...]:
    if tags is None:
        return ()
    if isinstance(tags, str) or not isinstance(tags, (list, tuple)):
        raise ValidationError("tags must be a list of strings")
    if len(tags) > max_tags:
        raise ValidationError(f"at most {max_tags} tags are allowed")
    cleaned = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError("tags must be a list of strings")
        tag = tag.strip()
        if not tag:
            raise ValidationError("tags must not be empty")
        cleaned.append(tag)
    return tuple(cleaned)


def check_interval_log(intervals: tuple[Interval, ...]) -> None:
    """Raise ``InvalidStateError`` unless only the last interval is open."""
    for interval in intervals[:-1]:
        if interval.is_open:
            raise InvalidStateError("only the most recent interval may be open")


# ── transitions ───────────────────────────────────────────────────────────


def start(
    owner: str,
    description: object,
    tags: object = None,
    *,
    now: datetime,
    max_description_length: int = 255,
    max_tags: int = 20,
) -> Session:
    """Create a RUNNING session with one open work interval at *now*."""
    return Session(
        id=uuid.uuid4().hex,
        owner=owner,
        description=clean_description(description, max_description_length),
        tags=clean_tags(tags, max_tags),
        status=SessionStatus.RUNNING,
        intervals=(Interval(IntervalKind.WORK, now),),
        created_at=now,
    )


def apply(session: Session, action: Action, *, now: datetime) -> Session:
    """Return the session after *action*, or raise ``InvalidStateError``."""
    try:
        new_status, open_kind = TRANSITIONS[(session.status, action)]
    except KeyError:
        raise InvalidStateError(
            f"cannot {action.value} a {session.status.value} session"
        ) from None

    current = session.open_interval
    if current is None:
        raise InvalidStateError(f"session {session.id} has no open interval")

    closed = current.closed_at(now)
    intervals = session.intervals[:-1] + (closed,)
    if open_kind is not None:
        intervals += (Interval(open_kind, closed.end),)
    check_interval_log(intervals)

    return replace(
        session,
        status=new_status,
        intervals=intervals,
        stopped_at=closed.end if new_status is SessionStatus.STOPPED else None,
    )


def pause(session: Session, *, now: datetime) -> Session:
    return apply(session, Action.PAUSE, now=now)


def resume(session: Session, *, now: datetime) -> Session:
    return apply(session, Action.RESUME, now=now)


def stop(session: Session, *, now: datetime) -> Session:
    return apply(session, Action.STOP, now=now)
