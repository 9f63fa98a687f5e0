"""Focus-session tracking package."""

from .machine import (
    Session,
    Interval,
    SessionStatus,
    IntervalKind,
    Action,
    TRANSITIONS,
)
from .elapsed import Elapsed, elapsed, format_clock
from .aggregator import DailyAggregator, DailySummary, productivity_score, attribute
from .store import SessionStore
from .service import FocusService
from .payloads import (
    session_to_dict,
    session_from_dict,
    summary_to_dict,
    summary_from_dict,
)

__all__ = [
    "Session",
    "Interval",
    "SessionStatus",
    "IntervalKind",
    "Action",
    "TRANSITIONS",
    "Elapsed",
    "elapsed",
    "format_clock",
    "DailyAggregator",
    "DailySummary",
    "productivity_score",
    "attribute",
    "SessionStore",
    "FocusService",
    "session_to_dict",
    "session_from_dict",
    "summary_to_dict",
    "summary_from_dict",
]
