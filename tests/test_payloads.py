"""Tests for the payloads sent to the client and the maintenance CLI."""

import json
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

import focustrack.__main__ as cli
from focustrack.database.db import configure_engine, init_db
from focustrack.settings import Settings
from focustrack.tracking import machine
from focustrack.tracking.aggregator import DailySummary
from focustrack.tracking.payloads import (
    session_from_dict, session_to_dict, summary_from_dict, summary_to_dict,
)

from helpers import run_session


T0 = datetime(2026, 3, 10, 9, 0, 0)


class TestSessionPayload:

    def test_carries_status_log_and_elapsed(self):
        s = machine.start("alice", "Write report", ["writing"], now=T0)
        s = machine.pause(s, now=T0 + timedelta(seconds=120))
        data = session_to_dict(s, T0 + timedelta(seconds=150))

        assert data["status"] == "paused"
        assert data["tags"] == ["writing"]
        assert data["intervals"] == [
            {"kind": "work", "start": "2026-03-10T09:00:00", "end": "2026-03-10T09:02:00"},
            {"kind": "break", "start": "2026-03-10T09:02:00", "end": None},
        ]
        assert data["workSeconds"] == 120
        assert data["breakSeconds"] == 30
        assert data["totalElapsedSeconds"] == 150
        assert data["serverTime"] == "2026-03-10T09:02:30"

    def test_is_json_serialisable_and_parses_back(self):
        s = machine.start("alice", "A", now=T0)
        data = json.loads(json.dumps(session_to_dict(s, T0)))
        assert session_from_dict(data) == s


class TestSummaryPayload:

    def test_keys(self):
        summary = DailySummary("alice", date(2026, 3, 10), 120, 30, 1, 80)
        assert summary_to_dict(summary) == {
            "owner": "alice",
            "date": "2026-03-10",
            "totalWorkSeconds": 120,
            "totalBreakSeconds": 30,
            "sessionCount": 1,
            "productivityScore": 80,
        }
        assert summary_from_dict(summary_to_dict(summary)) == summary


class TestCli:

    @pytest.fixture(autouse=True)
    def _memory_settings(self, monkeypatch):
        monkeypatch.setattr(
            cli, "load_settings",
            lambda: Settings(database_url="sqlite:///:memory:"),
        )

    def test_stats(self, capsys):
        assert cli.main(["stats", "alice", "--date", "2026-03-10"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["owner"] == "alice"
        assert out["totalWorkSeconds"] == 0

    def test_active_without_session(self, capsys):
        assert cli.main(["active", "alice"]) == 0
        assert capsys.readouterr().out.strip() == "null"

    def test_rollover_and_replay(self, capsys):
        assert cli.main(["rollover"]) == 0
        assert "0 sessions updated" in capsys.readouterr().out
        assert cli.main(["replay"]) == 0
        assert "0 sessions replayed" in capsys.readouterr().out


class TestCliWithData:
    """Runs the CLI against a database file that already holds sessions."""

    @pytest.fixture(autouse=True)
    def file_db(self, tmp_path, monkeypatch):
        url = f"sqlite:///{tmp_path / 'focustrack.db'}"
        configure_engine(url)
        init_db()
        monkeypatch.setattr(cli, "load_settings", lambda: Settings(database_url=url))

    def test_stats_reports_stopped_session(self, service, clock, capsys):
        run_session(service, clock, "alice", work=120, brk=30)
        assert cli.main(["stats", "alice", "--date", "2026-03-10"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out == {
            "owner": "alice",
            "date": "2026-03-10",
            "totalWorkSeconds": 120,
            "totalBreakSeconds": 30,
            "sessionCount": 1,
            "productivityScore": 80,
        }

    def test_rollover_applies_pending_session(self, service, clock, capsys, monkeypatch):
        agg = service._aggregator
        real_apply = agg._apply

        def storage_down(*args, **kwargs):
            raise OperationalError("UPDATE daily_stats", {}, Exception("database is locked"))

        monkeypatch.setattr(agg, "_apply", storage_down)
        run_session(service, clock, "alice", work=60)
        monkeypatch.setattr(agg, "_apply", real_apply)

        assert cli.main(["rollover"]) == 0
        assert "1 sessions updated" in capsys.readouterr().out
        assert cli.main(["stats", "alice", "--date", "2026-03-10"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert (out["totalWorkSeconds"], out["sessionCount"]) == (60, 1)
