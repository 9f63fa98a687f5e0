"""Database package."""

from .db import configure_engine, get_session, init_db
from .models import FocusSession, SessionInterval, DailyStat, StatContribution

__all__ = [
    "configure_engine",
    "get_session",
    "init_db",
    "FocusSession",
    "SessionInterval",
    "DailyStat",
    "StatContribution",
]
