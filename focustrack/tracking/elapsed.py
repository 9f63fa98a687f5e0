"""Elapsed-time calculator.

Derives work and break seconds from an interval log.  An open interval
counts up to *now*.  Nothing is mutated, so callers may re-derive at any
moment (the client does exactly that every time it reconciles).
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, NamedTuple

from .machine import Interval, IntervalKind


class Elapsed(NamedTuple):
    work_seconds: int
    break_seconds: int
    total_seconds: int


def interval_seconds(interval: Interval, now: datetime) -> int:
    """Whole seconds covered by *interval*, never negative."""
    end = interval.end if interval.end is not None else now
    return max(0, int((end - interval.start).total_seconds()))


def elapsed(intervals: Iterable[Interval], now: datetime) -> Elapsed:
    work = 0
    brk = 0
    for interval in intervals:
        seconds = interval_seconds(interval, now)
        if interval.kind is IntervalKind.WORK:
            work += seconds
        else:
            brk += seconds
    return Elapsed(work, brk, work + brk)


def format_clock(seconds: int) -> str:
    """Format seconds as ``HH:MM:SS`` (hours keep growing past 99)."""
    h, rem = divmod(max(0, int(seconds)), 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
