"""Cosmetic 1-second ticker for the client.

The ticker never owns time.  It holds the elapsed totals from the last
server snapshot and, once per second, adds the local time that passed
since that snapshot arrived: to work seconds while RUNNING, to break
seconds while PAUSED.  :meth:`SessionTicker.rebase` throws all of that
away and starts again from a fresh snapshot, so drift never outlives the
next sync.

The timer is parented to the ticker and stopped by
:meth:`SessionTicker.cancel`; views call it on teardown.
"""

from __future__ import annotations

import time
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..tracking.elapsed import format_clock


class SessionTicker(QObject):
    """Extrapolates elapsed time between server snapshots.

    Signals
    -------
    tick(data: dict)
        Emitted every interval while a session is active.  Keys:
        ``workSeconds``, ``breakSeconds``, ``totalElapsedSeconds``.
    rebased(status: str | None)
        Emitted after every :meth:`rebase`; ``None`` when no session is
        active.
    """

    tick = pyqtSignal(object)
    rebased = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        interval_ms: int = 1000,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(parent)
        self._monotonic = monotonic

        # ── last snapshot ─────────────────────────────────────────────
        self._status: str | None = None
        self._base_work: int = 0
        self._base_break: int = 0
        self._anchor: float = 0.0

        # ── Qt timer ──────────────────────────────────────────────────
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(interval_ms)
        self._qt_timer.timeout.connect(self._on_tick)

    # ── properties ───────────────────────────────────────────────────────

    @property
    def status(self) -> str | None:
        return self._status

    @property
    def is_ticking(self) -> bool:
        return self._qt_timer.isActive()

    @property
    def work_seconds(self) -> int:
        return self._base_work + (self._drift() if self._status == "running" else 0)

    @property
    def break_seconds(self) -> int:
        return self._base_break + (self._drift() if self._status == "paused" else 0)

    @property
    def total_seconds(self) -> int:
        return self.work_seconds + self.break_seconds

    @property
    def display(self) -> str:
        """Work time as ``HH:MM:SS``."""
        return format_clock(self.work_seconds)

    def snapshot(self) -> dict:
        work, brk = self.work_seconds, self.break_seconds
        return {
            "workSeconds": work,
            "breakSeconds": brk,
            "totalElapsedSeconds": work + brk,
        }

    # ── controls ─────────────────────────────────────────────────────────

    def rebase(self, session: dict | None) -> None:
        """Replace local state with a server session payload.

        ``None`` or a stopped session clears the ticker and stops the
        timer.
        """
        if session is None or session.get("status") == "stopped":
            self._status = None if session is None else "stopped"
            self._base_work = session.get("workSeconds", 0) if session else 0
            self._base_break = session.get("breakSeconds", 0) if session else 0
            self._qt_timer.stop()
        else:
            self._status = session["status"]
            self._base_work = session.get("workSeconds", 0)
            self._base_break = session.get("breakSeconds", 0)
            if not self._qt_timer.isActive():
                self._qt_timer.start()
        self._anchor = self._monotonic()
        self.rebased.emit(self._status if self._status != "stopped" else None)
        self.tick.emit(self.snapshot())

    def cancel(self) -> None:
        """Stop ticking.  Safe to call repeatedly."""
        self._qt_timer.stop()

    # ── internals ────────────────────────────────────────────────────────

    def _drift(self) -> int:
        return max(0, int(self._monotonic() - self._anchor))

    def _on_tick(self) -> None:
        if self._status not in ("running", "paused"):
            self._qt_timer.stop()
            return
        self.tick.emit(self.snapshot())
