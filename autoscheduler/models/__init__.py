from .enums import Priority, TaskStatus, PRIORITY_WEIGHTS
from .common import parse_iso_datetime, parse_iso_date, ensure_aware
from .calendar import CalendarEvent, build_ai_description, parse_ai_metadata
from .tasks import Task, task_from_dict
from .schedule import ScheduledPlacement, PlacementResult, placement_from_dict
from .preferences import Preferences, resolve_preferences
from .api import ParsedTask, ValidationError, RunSummary

__all__ = [
    "Priority",
    "TaskStatus",
    "PRIORITY_WEIGHTS",
    "parse_iso_datetime",
    "parse_iso_date",
    "ensure_aware",
    "CalendarEvent",
    "build_ai_description",
    "parse_ai_metadata",
    "Task",
    "task_from_dict",
    "ScheduledPlacement",
    "PlacementResult",
    "placement_from_dict",
    "Preferences",
    "resolve_preferences",
    "ParsedTask",
    "ValidationError",
    "RunSummary",
]
