"""In-process backend that speaks the client's payload format.

:class:`SyncClient` talks to anything with these six methods returning
payload dicts.  ``LocalBackend`` is the in-process one; an HTTP client
exposing the same methods drops in unchanged.
"""

from __future__ import annotations

from datetime import date

from ..tracking.payloads import session_to_dict, summary_to_dict
from ..tracking.service import FocusService


class LocalBackend:
    """Adapts :class:`FocusService` to payload dicts for one owner."""

    def __init__(self, service: FocusService, owner: str) -> None:
        self._service = service
        self.owner = owner

    def _out(self, session) -> dict | None:
        if session is None:
            return None
        return session_to_dict(session, self._service.now())

    def start(self, description: str, tags: list[str] | None = None) -> dict:
        return self._out(self._service.start(self.owner, description, tags))

    def pause(self) -> dict:
        return self._out(self._service.pause(self.owner))

    def resume(self) -> dict:
        return self._out(self._service.resume(self.owner))

    def stop(self) -> dict:
        return self._out(self._service.stop(self.owner))

    def get_active_session(self) -> dict | None:
        return self._out(self._service.get_active_session(self.owner))

    def get_daily_stats(self, day: date | None = None) -> dict:
        return summary_to_dict(self._service.get_daily_stats(self.owner, day))
