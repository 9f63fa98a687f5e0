"""Client package."""

from .ticker import SessionTicker
from .sync import SyncClient
from .backend import LocalBackend

__all__ = ["SessionTicker", "SyncClient", "LocalBackend"]
