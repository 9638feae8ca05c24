# File: tests/conftest.py
"""
Pytest configuration and shared fixtures.
Provides reusable test data and mocks for all tests.
"""

import itertools
import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Deterministic environment before Config is imported
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "autoscheduler-test-logs"))
os.environ["TIMEZONE"] = "UTC"

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autoscheduler.core.config_manager import Config
from autoscheduler.models import (
    CalendarEvent,
    Preferences,
    Priority,
    Task,
    build_ai_description,
)
from autoscheduler.services.store import SchedulerStore

UTC = timezone.utc

# ==================== Date/Time Fixtures ====================

@pytest.fixture
def at():
    """Aware UTC instants in the week of Monday, October 19, 2026."""
    def _at(hour: int, minute: int = 0, day: int = 19) -> datetime:
        return datetime(2026, 10, day, hour, minute, tzinfo=UTC)

    return _at


# ==================== Preference Fixtures ====================

@pytest.fixture
def prefs():
    """Default working hours in UTC."""
    return Preferences(time_zone="UTC")


@pytest.fixture
def no_buffer_prefs():
    """Default working hours without a buffer."""
    return Preferences(time_zone="UTC", buffer_minutes=0)


# ==================== Task Fixtures ====================

@pytest.fixture
def create_test_task():
    """Factory fixture for creating test tasks."""
    counter = itertools.count(1)

    def _create(
        title: str = "Test Task",
        duration_min: int = 30,
        priority: Priority = Priority.MEDIUM,
        deadline=None
    ) -> Task:
        return Task(
            id=f"task_{next(counter)}",
            title=title,
            duration_min=duration_min,
            priority=priority,
            deadline=deadline,
        )

    return _create


# ==================== Calendar Event Fixtures ====================

@pytest.fixture
def create_event():
    """Factory for calendar events; `ai=True` adds the marker description."""
    counter = itertools.count(1)

    def _create(start: datetime, end: datetime, summary: str = "Meeting", ai: bool = False,
                duration_min=None) -> CalendarEvent:
        description = None
        if ai:
            metadata = {'durationMin': duration_min} if duration_min is not None else {}
            description = build_ai_description(Config.AI_MARKER, metadata)
        return CalendarEvent(
            summary=summary,
            start=start,
            end=end,
            event_id=f"evt_{next(counter)}",
            description=description,
        )

    return _create


# ==================== Mock Service Fixtures ====================

@pytest.fixture
def mock_calendar_service():
    """Mock Google Calendar API resource."""
    mock = Mock()
    mock.events().list().execute.return_value = {'items': []}
    mock.events().insert().execute.return_value = {'id': 'new_event_id'}
    mock.events().patch().execute.return_value = {'id': 'patched'}
    mock.events().delete().execute.return_value = None
    return mock


class FakeCalendar:
    """In-memory stand-in for GoogleCalendarService."""

    def __init__(self, events=None):
        self.events = {e.event_id: e for e in (events or [])}
        self._ids = itertools.count(1)
        self.fail_create = False
        self.fail_update = set()
        self.fail_list = False
        self.created = []
        self.deleted = []

    def list_events(self, time_min, time_max):
        if self.fail_list:
            raise ConnectionError("calendar unavailable")
        return sorted(
            (e for e in self.events.values() if e.end > time_min and e.start < time_max),
            key=lambda e: e.start,
        )

    def create_event(self, summary, start, end, time_zone=None, description=None, generated=True):
        if self.fail_create:
            return None
        event_id = f"gen_{next(self._ids)}"
        self.events[event_id] = CalendarEvent(
            summary=summary,
            start=start,
            end=end,
            event_id=event_id,
            description=description,
            time_zone=time_zone,
            is_generated=generated,
        )
        self.created.append(event_id)
        return event_id

    def update_event(self, event_id, summary=None, start=None, end=None, time_zone=None, description=None):
        if event_id in self.fail_update or event_id not in self.events:
            return False
        event = self.events[event_id]
        event.start = start or event.start
        event.end = end or event.end
        return True

    def delete_events(self, event_ids):
        count = 0
        for event_id in event_ids:
            if self.events.pop(event_id, None) is not None:
                self.deleted.append(event_id)
                count += 1
        return count


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def memory_store():
    """Fresh in-memory SQLite store."""
    store = SchedulerStore(":memory:")
    yield store
    store.close()


# ==================== Pytest Markers ====================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external services"
    )
