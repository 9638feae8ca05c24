# File: tests/unit/test_store.py
"""
Unit tests for the SQLite store.
"""

import pytest
from datetime import date

from autoscheduler.models import Preferences, Priority, ScheduledPlacement, TaskStatus

pytestmark = pytest.mark.unit

USER = "alice"


def _placement(task, start, end, locked=False, ref=None):
    return ScheduledPlacement(task.id, task.title, start, end, task.priority, locked=locked, external_ref=ref)


class TestTasks:
    """Task rows."""

    def test_add_and_get(self, memory_store):
        task = memory_store.add_task(USER, "Write report", 45, "high", "2026-10-23")

        stored = memory_store.get_task(USER, task.id)
        assert stored.title == "Write report"
        assert stored.priority == Priority.HIGH
        assert stored.deadline == date(2026, 10, 23)
        assert stored.status == TaskStatus.PENDING

    def test_invalid_task_not_stored(self, memory_store):
        with pytest.raises(ValueError):
            memory_store.add_task(USER, "", 30)
        assert memory_store.get_task_rows(USER) == []

    def test_tasks_scoped_to_user(self, memory_store):
        task = memory_store.add_task(USER, "Mine", 30)
        assert memory_store.get_task("bob", task.id) is None
        assert memory_store.list_pending_tasks("bob") == []

    def test_pending_includes_unscheduled_in_insert_order(self, memory_store):
        first = memory_store.add_task(USER, "First", 30)
        second = memory_store.add_task(USER, "Second", 30, status=TaskStatus.UNSCHEDULED)
        done = memory_store.add_task(USER, "Done", 30)
        memory_store.set_status(done.id, TaskStatus.SCHEDULED)

        assert [t.id for t in memory_store.list_pending_tasks(USER)] == [first.id, second.id]

    def test_invalid_rows_skipped(self, memory_store):
        task = memory_store.add_task(USER, "Broken later", 30)
        with memory_store.conn:
            memory_store.conn.execute("UPDATE tasks SET duration_min = 0 WHERE id = ?", (task.id,))

        assert memory_store.list_pending_tasks(USER) == []
        assert len(memory_store.get_task_rows(USER)) == 1

    def test_set_status_accepts_strings(self, memory_store):
        task = memory_store.add_task(USER, "Read", 30)
        memory_store.set_status(task.id, "unscheduled")
        assert memory_store.get_task(USER, task.id).status == TaskStatus.UNSCHEDULED

    def test_delete_task_removes_blocks(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        memory_store.replace_unlocked_placements(USER, [_placement(task, at(9), at(9, 30))])

        assert memory_store.delete_task(USER, task.id) is True
        assert memory_store.list_placements(USER) == []
        assert memory_store.delete_task(USER, task.id) is False

    def test_reset_scheduled_tasks(self, memory_store):
        a = memory_store.add_task(USER, "A", 30, status=TaskStatus.SCHEDULED)
        memory_store.add_task(USER, "B", 30, status=TaskStatus.UNSCHEDULED)

        assert memory_store.reset_scheduled_tasks(USER) == 1
        assert memory_store.get_task(USER, a.id).status == TaskStatus.PENDING


class TestPlacements:
    """Time block rows."""

    def test_replace_assigns_ids_and_round_trips(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        inserted = memory_store.replace_unlocked_placements(USER, [_placement(task, at(9), at(9, 30))])

        assert inserted[0].id is not None
        stored = memory_store.get_placement(USER, inserted[0].id)
        assert stored.start == at(9)
        assert stored.end == at(9, 30)
        assert stored.locked is False

    def test_replace_keeps_locked_blocks(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        memory_store.replace_unlocked_placements(USER, [
            _placement(task, at(9), at(9, 30), locked=True),
            _placement(task, at(10), at(10, 30)),
        ])

        memory_store.replace_unlocked_placements(USER, [_placement(task, at(14), at(14, 30))])

        starts = [p.start for p in memory_store.list_placements(USER)]
        assert starts == [at(9), at(14)]
        assert [p.start for p in memory_store.list_locked_placements(USER)] == [at(9)]
        assert [p.start for p in memory_store.list_unlocked_placements(USER)] == [at(14)]

    def test_replace_scoped_to_tasks(self, memory_store, at):
        a = memory_store.add_task(USER, "A", 30)
        b = memory_store.add_task(USER, "B", 30)
        memory_store.replace_unlocked_placements(USER, [
            _placement(a, at(9), at(9, 30)),
            _placement(b, at(10), at(10, 30)),
        ])

        memory_store.replace_unlocked_placements(USER, [_placement(a, at(11), at(11, 30))], task_ids=[a.id])

        assert [(p.task_id, p.start) for p in memory_store.list_placements(USER)] == [
            (b.id, at(10)),
            (a.id, at(11)),
        ]

    def test_manual_update_locks_block(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        block = memory_store.replace_unlocked_placements(USER, [_placement(task, at(9), at(9, 30))])[0]

        moved = memory_store.update_placement(USER, block.id, at(15), at(16))

        assert moved.locked is True
        assert (moved.start, moved.end) == (at(15), at(16))

    def test_manual_update_validates(self, memory_store, at):
        with pytest.raises(ValueError):
            memory_store.update_placement(USER, 1, at(10), at(9))
        assert memory_store.update_placement(USER, 999, at(9), at(10)) is None

    def test_update_by_ref_skips_locked(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        loose, pinned = memory_store.replace_unlocked_placements(USER, [
            _placement(task, at(9), at(9, 30), ref="evt_1"),
            _placement(task, at(10), at(10, 30), locked=True, ref="evt_2"),
        ])

        assert memory_store.update_placement_times_by_ref(USER, "evt_1", at(13), at(13, 30)) == 1
        assert memory_store.update_placement_times_by_ref(USER, "evt_2", at(13), at(13, 30)) == 0
        assert memory_store.get_placement(USER, loose.id).start == at(13)
        assert memory_store.get_placement(USER, pinned.id).start == at(10)

    def test_set_external_ref(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        block = memory_store.replace_unlocked_placements(USER, [_placement(task, at(9), at(9, 30))])[0]

        memory_store.set_external_ref(block.id, "gen_1")

        assert memory_store.get_placement(USER, block.id).external_ref == "gen_1"

    def test_delete_placements_returns_deleted(self, memory_store, at):
        a = memory_store.add_task(USER, "A", 30)
        b = memory_store.add_task(USER, "B", 30)
        memory_store.replace_unlocked_placements(USER, [
            _placement(a, at(9), at(9, 30), ref="evt_a"),
            _placement(b, at(10), at(10, 30), locked=True, ref="evt_b"),
        ])

        only_a = memory_store.delete_placements(USER, task_id=a.id)
        assert [p.external_ref for p in only_a] == ["evt_a"]

        rest = memory_store.delete_placements(USER)
        assert [p.external_ref for p in rest] == ["evt_b"]
        assert memory_store.list_placements(USER) == []


class TestPreferencesAndPurge:
    """Preference rows and user removal."""

    def test_defaults_without_row(self, memory_store):
        prefs = memory_store.get_preferences(USER)
        assert prefs.work_start_hour == 9
        assert prefs.time_zone == "UTC"

    def test_save_and_load(self, memory_store):
        saved = Preferences(work_start_hour=8, work_end_hour=16, buffer_minutes=5,
                            prefer_morning=False, allow_weekend=True, time_zone="Europe/Amsterdam")
        memory_store.save_preferences(USER, saved)

        assert memory_store.get_preferences(USER) == saved

    def test_save_overwrites(self, memory_store):
        memory_store.save_preferences(USER, Preferences(buffer_minutes=5))
        memory_store.save_preferences(USER, Preferences(buffer_minutes=20))
        assert memory_store.get_preferences(USER).buffer_minutes == 20

    def test_stored_null_time_zone_uses_default(self, memory_store):
        memory_store.save_preferences(USER, Preferences(time_zone=None))
        assert memory_store.get_preferences(USER).time_zone == "UTC"

    def test_purge_user(self, memory_store, at):
        task = memory_store.add_task(USER, "Read", 30)
        memory_store.add_task("bob", "Other", 30)
        memory_store.replace_unlocked_placements(USER, [_placement(task, at(9), at(9, 30))])
        memory_store.save_preferences(USER, Preferences())

        counts = memory_store.purge_user(USER)

        assert counts == {'time_blocks': 1, 'tasks': 1, 'preferences': 1}
        assert len(memory_store.get_task_rows("bob")) == 1
