"""Service settings with JSON persistence.

Settings are stored at:
    ~/.local/share/FocusTrack/settings.json

Usage::

    settings = load_settings()
    settings.midnight_policy = "split"
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path


logger = logging.getLogger(__name__)

APP_DATA_DIR = Path.home() / ".local" / "share" / "FocusTrack"
SETTINGS_PATH = APP_DATA_DIR / "settings.json"
DB_PATH = APP_DATA_DIR / "focustrack.db"

MIDNIGHT_POLICIES = ("truncate", "start_date", "split")


@dataclass
class Settings:
    """All tunable knobs of the tracker."""

    # ── storage ───────────────────────────────────────────────────────
    database_url: str = f"sqlite:///{DB_PATH}"

    # ── aggregation ───────────────────────────────────────────────────
    midnight_policy: str = "truncate"      # truncate | start_date | split
    aggregation_retries: int = 3
    aggregation_retry_delay: float = 0.2   # seconds, doubled per attempt

    # ── requests ──────────────────────────────────────────────────────
    max_description_length: int = 255
    max_tags: int = 20

    # ── client ────────────────────────────────────────────────────────
    tick_interval_ms: int = 1000

    def __post_init__(self) -> None:
        if self.midnight_policy not in MIDNIGHT_POLICIES:
            raise ValueError(
                f"midnight_policy must be one of {MIDNIGHT_POLICIES}, "
                f"got {self.midnight_policy!r}"
            )


def load_settings(path: Path = SETTINGS_PATH) -> Settings:
    """Load settings from disk, falling back to defaults."""
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(Settings)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return Settings(**filtered)
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings at %s: %s", path, exc)
    return Settings()


def save_settings(settings: Settings, path: Path = SETTINGS_PATH) -> None:
    """Write settings to disk as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
