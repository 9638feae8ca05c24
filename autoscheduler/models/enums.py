# File: autoscheduler/models/enums.py

from enum import Enum

class Priority(Enum):
    """Task priority as entered by the user."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHTS[self]


PRIORITY_WEIGHTS = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class TaskStatus(Enum):
    """Task lifecycle states."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    UNSCHEDULED = "unscheduled"
