"""Shared test helpers for FocusTrack."""

from datetime import datetime, timedelta


START = datetime(2026, 3, 10, 9, 0, 0)


class FakeClock:
    """Callable stand-in for ``datetime.now``."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


class FakeMonotonic:
    """Callable stand-in for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


def run_session(service, clock, owner, *, work=0, brk=0, description="Focus"):
    """Start, work, optionally break, then stop.  Returns the stopped session."""
    service.start(owner, description)
    clock.advance(work)
    if brk:
        service.pause(owner)
        clock.advance(brk)
        service.resume(owner)
    return service.stop(owner)
