"""FocusTrack: focus-session tracking with daily productivity rollups."""

__version__ = "0.1.0"
