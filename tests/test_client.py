"""Tests for the client-side ticker and reconciliation.

Covers: extrapolation while running and paused, rebasing to server
truth (zero drift), cancellation on teardown, sync on cold start,
foreground and reconnect, transitions through the client, and what
happens when the server cannot be reached.
"""

import pytest
from PyQt6.QtCore import Qt

from focustrack.client import LocalBackend, SessionTicker, SyncClient
from focustrack.errors import NotFoundError

from helpers import SignalCollector


def _payload(status="running", work=0, brk=0):
    return {"status": status, "workSeconds": work, "breakSeconds": brk}


@pytest.fixture
def ticker(qapp, monotonic):
    return SessionTicker(parent=None, monotonic=monotonic)


@pytest.fixture
def backend(service):
    return LocalBackend(service, "alice")


@pytest.fixture
def client(qapp, backend, monotonic):
    c = SyncClient(backend, ticker=SessionTicker(monotonic=monotonic))
    yield c
    c.teardown()


class UnreachableBackend:
    """Every call fails as if the network were down."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise ConnectionError("server unreachable")
        return fail


class CountingBackend:
    def __init__(self):
        self.reads = 0

    def get_active_session(self):
        self.reads += 1
        return None

    def get_daily_stats(self, day=None):
        return {"totalWorkSeconds": 0, "totalBreakSeconds": 0, "productivityScore": 0}


# ═══════════════════════════════════════════════════════════════════════════
#  TICKER
# ═══════════════════════════════════════════════════════════════════════════


class TestTicker:

    def test_idle_ticker_is_not_ticking(self, ticker):
        assert not ticker.is_ticking
        assert ticker.status is None
        assert ticker.work_seconds == 0

    def test_running_extrapolates_work(self, ticker, monotonic):
        ticker.rebase(_payload(work=100, brk=10))
        assert ticker.is_ticking
        monotonic.advance(5)
        assert ticker.work_seconds == 105
        assert ticker.break_seconds == 10
        assert ticker.total_seconds == 115

    def test_paused_extrapolates_break(self, ticker, monotonic):
        ticker.rebase(_payload("paused", work=100, brk=10))
        monotonic.advance(7)
        assert ticker.work_seconds == 100
        assert ticker.break_seconds == 17

    def test_tick_signal_carries_snapshot(self, ticker, monotonic):
        c = SignalCollector()
        ticker.tick.connect(c)
        ticker.rebase(_payload(work=60))
        monotonic.advance(1)
        ticker._on_tick()
        assert c.last == {"workSeconds": 61, "breakSeconds": 0, "totalElapsedSeconds": 61}

    def test_rebase_discards_local_drift(self, ticker, monotonic):
        ticker.rebase(_payload(work=100))
        monotonic.advance(50)
        assert ticker.work_seconds == 150
        ticker.rebase(_payload(work=120))
        assert ticker.work_seconds == 120

    def test_display_format(self, ticker):
        ticker.rebase(_payload(work=3725))
        assert ticker.display == "01:02:05"

    def test_rebase_to_none_stops(self, ticker):
        ticker.rebase(_payload(work=5))
        ticker.rebase(None)
        assert not ticker.is_ticking
        assert ticker.work_seconds == 0

    def test_rebase_to_stopped_stops_and_freezes(self, ticker, monotonic):
        ticker.rebase(_payload(work=5))
        ticker.rebase(_payload("stopped", work=42, brk=8))
        monotonic.advance(10)
        assert not ticker.is_ticking
        assert (ticker.work_seconds, ticker.break_seconds) == (42, 8)

    def test_rebased_signal(self, ticker):
        c = SignalCollector()
        ticker.rebased.connect(c)
        ticker.rebase(_payload("paused"))
        ticker.rebase(None)
        assert c.items == ["paused", None]

    def test_cancel_stops_timer(self, ticker):
        ticker.rebase(_payload())
        ticker.cancel()
        assert not ticker.is_ticking
        ticker.cancel()  # idempotent
        assert not ticker.is_ticking

    def test_stray_tick_after_stop_halts_timer(self, ticker):
        ticker.rebase(None)
        ticker._on_tick()
        assert not ticker.is_ticking


# ═══════════════════════════════════════════════════════════════════════════
#  SYNC CLIENT
# ═══════════════════════════════════════════════════════════════════════════


class TestSync:

    def test_cold_start_picks_up_server_session(self, client, service, clock):
        service.start("alice", "Write report")
        clock.advance(300)
        assert client.sync() is True
        assert client.session["status"] == "running"
        assert client.session["description"] == "Write report"
        assert client.ticker.work_seconds == 300
        assert client.ticker.is_ticking
        assert client.stats["totalWorkSeconds"] == 300

    def test_cold_start_with_nothing_active(self, client):
        assert client.sync() is True
        assert client.session is None
        assert not client.ticker.is_ticking
        assert client.stats["productivityScore"] == 0

    def test_reconnect_rebases_from_server(self, client, service, clock, monotonic):
        client.start("Deep work")
        monotonic.advance(1000)   # local clock raced ahead while offline
        clock.advance(200)
        client.on_reconnected()
        assert client.ticker.work_seconds == 200

    def test_foreground_triggers_sync(self, qapp):
        backend = CountingBackend()
        client = SyncClient(backend)
        client._on_app_state(Qt.ApplicationState.ApplicationInactive)
        assert backend.reads == 0
        client._on_app_state(Qt.ApplicationState.ApplicationActive)
        assert backend.reads == 1
        client.teardown()

    def test_attach_and_teardown(self, qapp):
        client = SyncClient(CountingBackend())
        client.attach_to_application(qapp)
        client.teardown()
        assert client._app is None

    def test_unreachable_server_reports_and_keeps_ticking(self, qapp, monotonic):
        client = SyncClient(UnreachableBackend(), ticker=SessionTicker(monotonic=monotonic))
        client.ticker.rebase(_payload(work=10))
        failures = SignalCollector()
        client.sync_failed.connect(failures)

        assert client.sync() is False
        assert failures.last == "server unreachable"
        monotonic.advance(3)
        assert client.ticker.work_seconds == 13
        assert client.ticker.is_ticking
        client.teardown()

    def test_teardown_cancels_ticker(self, client, service):
        service.start("alice", "A")
        client.sync()
        client.teardown()
        assert not client.ticker.is_ticking

    def test_reconnect_after_teardown_does_not_restart_ticker(self, client, service):
        service.start("alice", "A")
        client.sync()
        client.teardown()
        assert client.sync() is False
        client.on_reconnected()
        client._on_app_state(Qt.ApplicationState.ApplicationActive)
        assert not client.ticker.is_ticking


class TestClientTransitions:

    def test_full_cycle_through_client(self, client, clock):
        changes = SignalCollector()
        client.session_changed.connect(changes)

        client.start("Write report", [])
        assert client.session["status"] == "running"
        clock.advance(60)
        client.pause()
        assert client.ticker.status == "paused"
        clock.advance(30)
        client.resume()
        clock.advance(60)
        stopped = client.stop()

        assert stopped["status"] == "stopped"
        assert stopped["workSeconds"] == 120
        assert stopped["breakSeconds"] == 30
        assert client.session is None
        assert changes.last is None
        assert not client.ticker.is_ticking
        assert client.stats["totalWorkSeconds"] == 120
        assert client.stats["productivityScore"] == 80

    def test_refused_transition_resyncs_and_raises(self, client):
        with pytest.raises(NotFoundError):
            client.pause()
        assert client.session is None
        assert client.stats is not None
