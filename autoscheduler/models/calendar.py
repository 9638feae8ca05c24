# File: autoscheduler/models/calendar.py

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

@dataclass
class CalendarEvent:
    """Represents an event read from the calendar provider."""
    summary: str
    start: datetime
    end: datetime
    event_id: Optional[str] = None
    description: Optional[str] = None
    time_zone: Optional[str] = None
    is_generated: bool = False

    def __post_init__(self):
        """Validate event data."""
        if self.end <= self.start:
            raise ValueError(f"Event end time must be after start time: {self.summary}")

    def duration_minutes(self) -> int:
        """Calculate event duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps_with(self, other: 'CalendarEvent') -> bool:
        """Check if this event overlaps with another."""
        return self.start < other.end and self.end > other.start

    def is_ai_managed(self, marker: str) -> bool:
        """True when the scheduler created this event and may move it."""
        return self.is_generated or bool(self.description and marker in self.description)


def build_ai_description(marker: str, metadata: Dict[str, Any]) -> str:
    """Render the marker line stored in an auto-placed event's description."""
    return f"{marker} {json.dumps(metadata, sort_keys=True)}"


def parse_ai_metadata(description: Optional[str], marker: str) -> Dict[str, Any]:
    """
    Extract the JSON payload that follows the marker.

    Returns an empty dict when the marker is absent or the payload is not a
    JSON object.
    """
    if not description or marker not in description:
        return {}

    payload = description.split(marker, 1)[1].strip()
    # Only the first line belongs to the marker; users may append notes
    payload = payload.splitlines()[0] if payload else ""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}
