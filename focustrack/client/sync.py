"""Client-side reconciliation with the server.

``SyncClient`` keeps a view's copy of the active session and today's
stats in step with the server.  It re-fetches both on cold start
(:meth:`sync`), on reconnect (:meth:`on_reconnected`) and whenever the
application comes back to the foreground, then rebases the
:class:`~.ticker.SessionTicker`.  Between syncs the ticker only
extrapolates; a failed sync leaves it ticking and reports through
``sync_failed``.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtGui import QGuiApplication

from ..errors import FocusTrackError
from .ticker import SessionTicker


logger = logging.getLogger(__name__)

# Errors that mean "server unreachable or said no" rather than a bug.
SYNC_ERRORS = (FocusTrackError, OSError)


class SyncClient(QObject):
    """Mirrors server state for one owner.

    Signals
    -------
    session_changed(session: dict | None)
        Emitted after every sync or transition with the server's payload.
    stats_changed(stats: dict)
        Emitted with today's DailyStat payload.
    sync_failed(message: str)
        Emitted when the server could not be reached or refused a read.
    """

    session_changed = pyqtSignal(object)
    stats_changed = pyqtSignal(object)
    sync_failed = pyqtSignal(str)

    def __init__(
        self,
        backend,
        parent: QObject | None = None,
        *,
        ticker: SessionTicker | None = None,
        tick_interval_ms: int = 1000,
    ) -> None:
        super().__init__(parent)
        self._backend = backend
        self._ticker = ticker or SessionTicker(self, interval_ms=tick_interval_ms)
        self._session: dict | None = None
        self._stats: dict | None = None
        self._app: QGuiApplication | None = None
        self._torn_down = False

    # ── properties ───────────────────────────────────────────────────────

    @property
    def ticker(self) -> SessionTicker:
        return self._ticker

    @property
    def session(self) -> dict | None:
        return self._session

    @property
    def stats(self) -> dict | None:
        return self._stats

    # ── reconciliation ───────────────────────────────────────────────────

    def sync(self) -> bool:
        """Fetch the active session and today's stats; rebase the ticker.

        Returns ``False`` (and emits ``sync_failed``) if either read
        failed.  Local ticking continues in that case.  After
        :meth:`teardown` nothing is fetched and ``False`` is returned.
        """
        if self._torn_down:
            return False
        try:
            session = self._backend.get_active_session()
            stats = self._backend.get_daily_stats()
        except SYNC_ERRORS as exc:
            logger.warning("Sync failed: %s", exc)
            self.sync_failed.emit(str(exc))
            return False
        self._apply_session(session)
        self._apply_stats(stats)
        return True

    def on_reconnected(self) -> None:
        self.sync()

    def attach_to_application(self, app: QGuiApplication) -> None:
        """Sync every time *app* becomes active again."""
        self._app = app
        app.applicationStateChanged.connect(self._on_app_state)

    def teardown(self) -> None:
        """Stop local ticking and detach.  Call when the view goes away."""
        self._torn_down = True
        self._ticker.cancel()
        if self._app is not None:
            self._app.applicationStateChanged.disconnect(self._on_app_state)
            self._app = None

    # ── transitions ──────────────────────────────────────────────────────

    def start(self, description: str, tags: list[str] | None = None) -> dict:
        return self._call(self._backend.start, description, tags or [])

    def pause(self) -> dict:
        return self._call(self._backend.pause)

    def resume(self) -> dict:
        return self._call(self._backend.resume)

    def stop(self) -> dict:
        session = self._call(self._backend.stop)
        try:
            self._apply_stats(self._backend.get_daily_stats())
        except SYNC_ERRORS as exc:
            logger.warning("Could not refresh stats after stop: %s", exc)
            self.sync_failed.emit(str(exc))
        return session

    # ── internals ────────────────────────────────────────────────────────

    def _call(self, method, *args) -> dict:
        try:
            session = method(*args)
        except FocusTrackError:
            # The server refused; our view of it is probably stale.
            self.sync()
            raise
        self._apply_session(session)
        return session

    def _apply_session(self, session: dict | None) -> None:
        if self._torn_down:
            return
        if session is not None and session.get("status") == "stopped":
            self._session = None
        else:
            self._session = session
        self._ticker.rebase(session)
        self.session_changed.emit(self._session)

    def _apply_stats(self, stats: dict) -> None:
        self._stats = stats
        self.stats_changed.emit(stats)

    def _on_app_state(self, state) -> None:
        if state == Qt.ApplicationState.ApplicationActive:
            self.sync()
