# File: autoscheduler/models/api.py
"""
Data models exchanged with callers and external collaborators.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from .enums import Priority
from .schedule import ScheduledPlacement

@dataclass
class ParsedTask:
    """Structured task produced by the text parser."""
    title: str
    duration_min: int
    priority: Priority = Priority.MEDIUM
    deadline: Optional[date] = None
    start: Optional[datetime] = None


@dataclass
class ValidationError:
    """Represents a validation error."""
    field: str
    message: str
    entry_index: Optional[int] = None

    def __str__(self) -> str:
        """String representation of error."""
        if self.entry_index is not None:
            return f"Entry {self.entry_index} - {self.field}: {self.message}"
        return f"{self.field}: {self.message}"


@dataclass
class RunSummary:
    """
    Partial-success report for one orchestrated operation.

    Counts are always returned; a failed collaborator call adds a reason
    instead of aborting the run.
    """
    success: bool = True
    placed: int = 0
    unplaced: int = 0
    updated: int = 0
    removed: int = 0
    failed: int = 0
    reasons: List[str] = field(default_factory=list)
    rejected: List[ValidationError] = field(default_factory=list)
    placements: List[ScheduledPlacement] = field(default_factory=list)

    def add_failure(self, reason: str) -> None:
        self.failed += 1
        self.reasons.append(reason)

    def abort(self, reason: str) -> 'RunSummary':
        """Mark the whole operation as failed."""
        self.success = False
        self.reasons.append(reason)
        return self

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'placed': self.placed,
            'unplaced': self.unplaced,
            'updated': self.updated,
            'removed': self.removed,
            'failed': self.failed,
            'reasons': list(self.reasons),
            'rejected': [str(r) for r in self.rejected],
            'placements': [p.to_dict() for p in self.placements],
        }
