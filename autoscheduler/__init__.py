"""Auto-scheduling of pending tasks into free calendar time."""

__version__ = "0.3.0"
