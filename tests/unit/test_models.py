# File: tests/unit/test_models.py
"""
Unit tests for data models.
Tests all dataclasses and their methods.
"""

import pytest
from datetime import date, datetime, timezone

from autoscheduler.models import (
    CalendarEvent,
    ParsedTask,
    Priority,
    RunSummary,
    ScheduledPlacement,
    Task,
    TaskStatus,
    ValidationError,
    build_ai_description,
    parse_ai_metadata,
    parse_iso_date,
    parse_iso_datetime,
    placement_from_dict,
    task_from_dict,
)

pytestmark = pytest.mark.unit

MARKER = "[autoscheduler]"


# ==================== Task Tests ====================

class TestTask:
    """Tests for Task dataclass."""

    def test_task_creation(self):
        """Test basic task creation."""
        task = Task(id="1", title="Write report", duration_min=45, priority=Priority.HIGH)

        assert task.title == "Write report"
        assert task.duration_min == 45
        assert task.priority == Priority.HIGH
        assert task.status == TaskStatus.PENDING
        assert task.deadline is None

    def test_priority_string_converted(self):
        task = Task("1", "Call bank", 15, priority="HIGH")
        assert task.priority == Priority.HIGH

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValueError, match="Unknown priority"):
            Task("1", "Call bank", 15, priority="urgent")

    def test_deadline_string_parsed(self):
        task = Task("1", "Taxes", 120, deadline="2026-10-30")
        assert task.deadline == date(2026, 10, 30)
        assert task.deadline_str == "2026-10-30"

    def test_deadline_datetime_truncated_to_date(self):
        task = Task("1", "Taxes", 120, deadline=datetime(2026, 10, 30, 18, 0))
        assert task.deadline == date(2026, 10, 30)

    def test_missing_deadline_string(self):
        assert Task("1", "Read", 30).deadline_str == "N/A"

    @pytest.mark.parametrize("duration", [0, -15, 1.5, True, "30"])
    def test_invalid_duration_rejected(self, duration):
        with pytest.raises(ValueError):
            Task("1", "Read", duration)

    def test_blank_title_rejected(self):
        with pytest.raises(ValueError, match="title"):
            Task("1", "   ", 30)

    def test_to_dict(self):
        task = Task("t1", "Read", 30, Priority.LOW, date(2026, 10, 20), TaskStatus.SCHEDULED)
        assert task.to_dict() == {
            'id': 't1',
            'title': 'Read',
            'duration_min': 30,
            'priority': 'low',
            'deadline': '2026-10-20',
            'status': 'scheduled',
        }


class TestTaskFromDict:
    """Tests for task_from_dict factory function."""

    def test_from_store_row(self):
        task = task_from_dict({
            'id': 'abc',
            'title': ' Plan sprint ',
            'duration_min': '45.0',
            'priority': 'medium',
            'deadline': '2026-10-21',
            'status': 'unscheduled',
        })

        assert task.title == "Plan sprint"
        assert task.duration_min == 45
        assert task.deadline == date(2026, 10, 21)
        assert task.status == TaskStatus.UNSCHEDULED

    def test_defaults_applied(self):
        task = task_from_dict({'id': 1, 'title': 'Stretch', 'duration_min': 10, 'priority': None})
        assert task.id == "1"
        assert task.priority == Priority.MEDIUM
        assert task.status == TaskStatus.PENDING

    def test_missing_duration(self):
        with pytest.raises(ValueError, match="Missing duration"):
            task_from_dict({'title': 'Stretch'})

    def test_non_numeric_duration(self):
        with pytest.raises(ValueError, match="Invalid duration"):
            task_from_dict({'title': 'Stretch', 'duration_min': 'a while'})

    def test_invalid_deadline(self):
        with pytest.raises(ValueError, match="Invalid date"):
            task_from_dict({'title': 'Stretch', 'duration_min': 10, 'deadline': 'someday'})


# ==================== Date Helpers ====================

class TestDateHelpers:
    """ISO parsing helpers."""

    def test_zulu_suffix(self):
        parsed = parse_iso_datetime("2026-10-19T09:00:00Z")
        assert parsed == datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def test_invalid_datetime_returns_none(self):
        assert parse_iso_datetime("not a date") is None
        assert parse_iso_datetime(None) is None

    def test_parse_iso_date_passthrough(self):
        assert parse_iso_date(date(2026, 10, 19)) == date(2026, 10, 19)
        assert parse_iso_date("") is None


# ==================== Calendar Event Tests ====================

class TestCalendarEvent:
    """Tests for CalendarEvent dataclass."""

    def test_event_duration(self, at):
        event = CalendarEvent("Meeting", at(9), at(10, 30))
        assert event.duration_minutes() == 90

    def test_end_before_start_rejected(self, at):
        with pytest.raises(ValueError):
            CalendarEvent("Broken", at(10), at(9))

    def test_overlap(self, at):
        a = CalendarEvent("A", at(9), at(10))
        b = CalendarEvent("B", at(9, 30), at(11))
        c = CalendarEvent("C", at(10), at(11))
        assert a.overlaps_with(b)
        assert not a.overlaps_with(c)

    def test_ai_managed_by_marker(self, at):
        description = build_ai_description(MARKER, {'durationMin': 30})
        assert CalendarEvent("Auto", at(9), at(9, 30), description=description).is_ai_managed(MARKER)
        assert not CalendarEvent("Manual", at(9), at(9, 30), description="notes").is_ai_managed(MARKER)

    def test_ai_managed_by_generated_flag(self, at):
        event = CalendarEvent("Auto", at(9), at(9, 30), is_generated=True)
        assert event.is_ai_managed(MARKER)


class TestAiMetadata:
    """Marker payload round trip and tolerance."""

    def test_payload_read_back(self):
        description = build_ai_description(MARKER, {'durationMin': 45, 'taskId': 'abc'})
        assert parse_ai_metadata(description, MARKER) == {'durationMin': 45, 'taskId': 'abc'}

    def test_user_notes_after_marker_line(self):
        description = build_ai_description(MARKER, {'durationMin': 45}) + "\nBring laptop"
        assert parse_ai_metadata(description, MARKER) == {'durationMin': 45}

    def test_missing_marker(self):
        assert parse_ai_metadata("just notes", MARKER) == {}
        assert parse_ai_metadata(None, MARKER) == {}

    def test_malformed_payload(self):
        assert parse_ai_metadata(f"{MARKER} {{not json", MARKER) == {}
        assert parse_ai_metadata(f"{MARKER} [1, 2]", MARKER) == {}


# ==================== Placement Tests ====================

class TestScheduledPlacement:
    """Tests for ScheduledPlacement dataclass."""

    def test_duration_and_dict(self, at):
        placement = ScheduledPlacement("t1", "Write", at(9), at(9, 45), priority="high", id=3)

        assert placement.duration_min == 45
        assert placement.priority == Priority.HIGH
        data = placement.to_dict()
        assert data['start_time'] == at(9).isoformat()
        assert data['priority'] == 'high'
        assert data['locked'] is False

    def test_zero_length_rejected(self, at):
        with pytest.raises(ValueError):
            ScheduledPlacement("t1", "Write", at(9), at(9))

    def test_from_store_row(self, at):
        placement = placement_from_dict({
            'id': 7,
            'task_id': 'abc',
            'title': 'Write',
            'start_time': at(9).isoformat(),
            'end_time': at(10).isoformat(),
            'priority': 'low',
            'locked': 1,
            'google_event_id': 'evt_9',
            'status': 'scheduled',
        })

        assert placement.id == 7
        assert placement.start == at(9)
        assert placement.locked is True
        assert placement.external_ref == 'evt_9'
        assert placement.priority == Priority.LOW


# ==================== API Model Tests ====================

class TestApiModels:
    """Parsed tasks, validation errors and run summaries."""

    def test_parsed_task_defaults(self):
        parsed = ParsedTask(title="Gym", duration_min=60)
        assert parsed.priority == Priority.MEDIUM
        assert parsed.start is None

    def test_validation_error_str(self):
        assert str(ValidationError("duration", "must be positive", 2)) == \
            "Entry 2 - duration: must be positive"
        assert str(ValidationError("title", "empty")) == "title: empty"

    def test_summary_failure_keeps_success(self):
        summary = RunSummary()
        summary.add_failure("mirror failed")
        assert summary.success is True
        assert summary.failed == 1
        assert summary.reasons == ["mirror failed"]

    def test_summary_abort(self):
        summary = RunSummary(placed=2).abort("calendar unavailable")
        assert summary.success is False
        assert summary.to_dict()['reasons'] == ["calendar unavailable"]
        assert summary.to_dict()['placed'] == 2

    def test_summary_dict_includes_placements(self, at):
        summary = RunSummary(placed=1, placements=[ScheduledPlacement("t1", "Write", at(9), at(10))])
        assert summary.to_dict()['placements'][0]['task_id'] == "t1"
