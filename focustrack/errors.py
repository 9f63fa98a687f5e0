"""Error kinds raised by the focus-tracking service.

Every error is returned to the caller as-is.  Transitions are never
retried internally; only aggregation retries (see
:mod:`focustrack.tracking.aggregator`).
"""

from __future__ import annotations


class FocusTrackError(Exception):
    """Base class for all focustrack errors."""


class ValidationError(FocusTrackError):
    """Request payload is malformed (e.g. empty description)."""


class ConflictError(FocusTrackError):
    """An active session already exists, or a concurrent transition won."""


class InvalidStateError(FocusTrackError):
    """The transition is not allowed from the session's current status."""


class NotFoundError(FocusTrackError):
    """No session (or no active session) matches the request."""


class AggregationError(FocusTrackError):
    """Daily aggregation kept failing after all retries.

    The session stays flagged as unaggregated and is picked up again by
    :meth:`FocusService.replay_pending`.
    """

    def __init__(self, session_id: str, cause: BaseException | None = None) -> None:
        super().__init__(f"aggregation failed for session {session_id}: {cause}")
        self.session_id = session_id
        self.cause = cause
