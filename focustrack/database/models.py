"""SQLAlchemy ORM models for FocusTrack."""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, JSON, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class FocusSession(Base):
    """One focus-tracking attempt and its status."""

    __tablename__ = "focus_sessions"

    id = Column(String(32), primary_key=True)
    owner = Column(String(64), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(10), nullable=False, default="running")  # running | paused | stopped
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    stopped_at = Column(DateTime, nullable=True)
    # Compare-and-swap token, bumped by every committed transition.
    version = Column(Integer, nullable=False, default=1)
    # owner while running/paused, NULL once stopped.  UNIQUE allows only
    # one active session per owner.
    active_owner = Column(String(64), nullable=True, unique=True)
    aggregated = Column(Boolean, nullable=False, default=False)

    intervals = relationship(
        "SessionInterval",
        back_populates="session",
        order_by="SessionInterval.seq",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<FocusSession id={self.id} owner={self.owner} "
            f"status={self.status} v{self.version}>"
        )


class SessionInterval(Base):
    """A contiguous work or break period within a session."""

    __tablename__ = "session_intervals"
    __table_args__ = (UniqueConstraint("session_id", "seq"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        String(32), ForeignKey("focus_sessions.id"), nullable=False, index=True,
    )
    seq = Column(Integer, nullable=False)          # 0-based position
    kind = Column(String(10), nullable=False)      # work | break
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)     # NULL while open

    session = relationship("FocusSession", back_populates="intervals")

    def __repr__(self) -> str:
        return (
            f"<SessionInterval session={self.session_id} seq={self.seq} "
            f"kind={self.kind} open={self.end_time is None}>"
        )


class DailyStat(Base):
    """Per-owner, per-day rollup of work/break seconds."""

    __tablename__ = "daily_stats"
    __table_args__ = (UniqueConstraint("owner", "date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    total_work_seconds = Column(Integer, nullable=False, default=0)
    total_break_seconds = Column(Integer, nullable=False, default=0)
    session_count = Column(Integer, nullable=False, default=0)
    productivity_score = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<DailyStat owner={self.owner} date={self.date} "
            f"work={self.total_work_seconds}s break={self.total_break_seconds}s "
            f"score={self.productivity_score}>"
        )


class StatContribution(Base):
    """Ledger of (interval, date) shares already folded into DailyStat.

    The unique key makes re-aggregation of the same interval a no-op.
    """

    __tablename__ = "stat_contributions"
    __table_args__ = (
        UniqueConstraint("interval_id", "stat_date"),
        Index("ix_stat_contributions_owner_date", "owner", "stat_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    interval_id = Column(
        Integer, ForeignKey("session_intervals.id"), nullable=False,
    )
    session_id = Column(String(32), nullable=False)
    owner = Column(String(64), nullable=False)
    stat_date = Column(Date, nullable=False)
    kind = Column(String(10), nullable=False)
    seconds = Column(Integer, nullable=False, default=0)
    applied_at = Column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self) -> str:
        return (
            f"<StatContribution interval={self.interval_id} "
            f"date={self.stat_date} {self.kind}={self.seconds}s>"
        )
