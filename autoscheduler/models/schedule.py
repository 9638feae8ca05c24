# File: autoscheduler/models/schedule.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from .enums import Priority
from .tasks import Task
from .common import parse_iso_datetime

@dataclass
class ScheduledPlacement:
    """A task pinned to a concrete time block."""
    task_id: str
    title: str
    start: datetime
    end: datetime
    priority: Priority = Priority.MEDIUM
    locked: bool = False
    external_ref: Optional[str] = None
    id: Optional[int] = None
    status: str = "scheduled"

    def __post_init__(self):
        if isinstance(self.priority, str):
            self.priority = Priority(self.priority)
        if self.end <= self.start:
            raise ValueError(f"Placement end must be after start: {self.title}")

    @property
    def duration_min(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps_with(self, other: 'ScheduledPlacement') -> bool:
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'task_id': self.task_id,
            'title': self.title,
            'start_time': self.start.isoformat(),
            'end_time': self.end.isoformat(),
            'duration_min': self.duration_min,
            'priority': self.priority.value,
            'status': self.status,
            'locked': self.locked,
            'external_ref': self.external_ref,
        }


@dataclass
class PlacementResult:
    """Outcome of one greedy placement run."""
    placements: List[ScheduledPlacement] = field(default_factory=list)
    unplaced: List[Task] = field(default_factory=list)

    def has_conflicts(self) -> bool:
        """Check if any two placements overlap."""
        for i, first in enumerate(self.placements):
            for second in self.placements[i + 1:]:
                if first.overlaps_with(second):
                    return True
        return False


def placement_from_dict(data: dict) -> ScheduledPlacement:
    """Create ScheduledPlacement from a store row."""
    return ScheduledPlacement(
        id=data.get('id'),
        task_id=str(data['task_id']),
        title=data['title'],
        start=parse_iso_datetime(data['start_time']),
        end=parse_iso_datetime(data['end_time']),
        priority=data.get('priority') or Priority.MEDIUM,
        locked=bool(data.get('locked', False)),
        external_ref=data.get('google_event_id') or data.get('external_ref'),
        status=data.get('status', 'scheduled'),
    )
