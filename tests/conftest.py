"""Shared pytest fixtures for FocusTrack tests."""

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from focustrack.database.db import configure_engine, init_db
from focustrack.settings import Settings
from focustrack.tracking.aggregator import DailyAggregator
from focustrack.tracking.service import FocusService

from helpers import FakeClock, FakeMonotonic


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    """Server clock frozen at 2026-03-10 09:00:00; move it with advance()."""
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def sleeps():
    """Collects the delays the aggregator would have slept for."""
    return []


@pytest.fixture
def service(clock, sleeps):
    """FocusService on the fake clock, truncate policy, no real sleeping."""
    settings = Settings(database_url="sqlite:///:memory:")
    aggregator = DailyAggregator(
        policy=settings.midnight_policy,
        retries=2,
        retry_delay=0.01,
        sleep=sleeps.append,
    )
    return FocusService(settings, clock=clock, aggregator=aggregator, lock_timeout=1.0)


def _service_with_policy(clock, policy):
    settings = Settings(database_url="sqlite:///:memory:", midnight_policy=policy)
    return FocusService(settings, clock=clock)


@pytest.fixture
def split_service(clock):
    return _service_with_policy(clock, "split")


@pytest.fixture
def start_date_service(clock):
    return _service_with_policy(clock, "start_date")
