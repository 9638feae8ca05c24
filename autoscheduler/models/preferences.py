# File: autoscheduler/models/preferences.py
"""
Scheduling preferences and their single default-resolution point.
"""

from dataclasses import dataclass, fields
from typing import Optional, Dict, Any

import pytz

# Accept the camelCase keys used by web clients alongside our own names
_ALIASES = {
    'workStartHour': 'work_start_hour',
    'workEndHour': 'work_end_hour',
    'bufferMinutes': 'buffer_minutes',
    'preferMorning': 'prefer_morning',
    'allowWeekend': 'allow_weekend',
    'defaultDurationMin': 'default_duration_min',
    'timeZone': 'time_zone',
    'suggestTime': 'suggest_time',
}


@dataclass(frozen=True)
class Preferences:
    """Per-user working-hour and placement preferences."""
    work_start_hour: int = 9
    work_end_hour: int = 17
    buffer_minutes: int = 15
    prefer_morning: bool = True
    allow_weekend: bool = False
    default_duration_min: int = 60
    time_zone: Optional[str] = None
    suggest_time: bool = True

    def __post_init__(self):
        for name in ('work_start_hour', 'work_end_hour'):
            hour = getattr(self, name)
            if not 0 <= hour <= 23:
                raise ValueError(f"{name} must be between 0 and 23, got {hour}")
        if self.work_end_hour <= self.work_start_hour:
            raise ValueError(
                f"Workday must end after it starts ({self.work_start_hour}-{self.work_end_hour})"
            )
        if self.buffer_minutes < 0:
            raise ValueError("buffer_minutes cannot be negative")
        if self.default_duration_min <= 0:
            raise ValueError("default_duration_min must be positive")
        if self.time_zone:
            try:
                pytz.timezone(self.time_zone)
            except pytz.UnknownTimeZoneError:
                raise ValueError(f"Unknown time zone: {self.time_zone}") from None

    def tz(self, fallback: str = "UTC"):
        """pytz timezone for window math; the label itself is opaque metadata."""
        return pytz.timezone(self.time_zone or fallback)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, value: Any) -> Any:
    if name in ('prefer_morning', 'allow_weekend', 'suggest_time'):
        if isinstance(value, str):
            return value.strip().lower() in ['yes', 'true', '1', 'on', 'y', 't']
        return bool(value)
    if name == 'time_zone':
        return value or None
    return int(value)


def resolve_preferences(
    overrides: Optional[Dict[str, Any]] = None,
    defaults: Optional[Dict[str, Any]] = None,
) -> Preferences:
    """
    Merge partial preferences onto the default set.

    Args:
        overrides: Partial preferences (snake_case or camelCase keys); None
            values and unknown keys are ignored
        defaults: Base values, normally Config.DEFAULT_PREFERENCES

    Returns:
        Validated Preferences

    Raises:
        ValueError: if a merged value is out of range
    """
    known = {f.name for f in fields(Preferences)}
    merged: Dict[str, Any] = {}

    for source in (defaults or {}, overrides or {}):
        for key, value in source.items():
            name = _ALIASES.get(key, key)
            if name not in known or value is None:
                continue
            merged[name] = _coerce(name, value)

    return Preferences(**merged)
