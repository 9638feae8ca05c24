# File: autoscheduler/models/tasks.py

from dataclasses import dataclass
from datetime import date
from typing import Optional
from .enums import Priority, TaskStatus
from .common import parse_iso_date

@dataclass
class Task:
    """Represents a task waiting to be placed on the calendar."""
    id: str
    title: str
    duration_min: int
    priority: Priority = Priority.MEDIUM
    deadline: Optional[date] = None
    status: TaskStatus = TaskStatus.PENDING

    def __post_init__(self):
        """Validate task data and auto-convert types."""
        if not self.title or not str(self.title).strip():
            raise ValueError("Task title cannot be empty")

        if isinstance(self.duration_min, bool) or not isinstance(self.duration_min, int):
            raise ValueError(f"Duration must be an integer number of minutes: {self.title}")
        if self.duration_min <= 0:
            raise ValueError(f"Duration must be positive: {self.title}")

        if isinstance(self.priority, str):
            try:
                self.priority = Priority(self.priority.lower())
            except ValueError:
                raise ValueError(f"Unknown priority {self.priority!r}: {self.title}") from None

        if isinstance(self.status, str):
            self.status = TaskStatus(self.status)

        self.deadline = parse_iso_date(self.deadline)

    @property
    def deadline_str(self) -> str:
        """Get formatted deadline string."""
        if self.deadline:
            return self.deadline.isoformat()
        return "N/A"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'duration_min': self.duration_min,
            'priority': self.priority.value,
            'deadline': self.deadline.isoformat() if self.deadline else None,
            'status': self.status.value,
        }


def task_from_dict(data: dict) -> Task:
    """
    Create Task from a store row or API payload.

    Raises:
        ValueError: if a required field is missing or invalid
    """
    if 'duration_min' not in data or data['duration_min'] in (None, ''):
        raise ValueError(f"Missing duration for task {data.get('title', 'Unknown')!r}")
    try:
        duration = int(float(data['duration_min']))  # Handle "45.0" strings
    except (TypeError, ValueError):
        raise ValueError(f"Invalid duration {data['duration_min']!r}") from None

    return Task(
        id=str(data.get('id', '')),
        title=str(data.get('title') or '').strip(),
        duration_min=duration,
        priority=data.get('priority') or Priority.MEDIUM,
        deadline=data.get('deadline'),
        status=data.get('status') or TaskStatus.PENDING,
    )
