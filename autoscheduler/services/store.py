# File: autoscheduler/services/store.py

import sqlite3
import uuid
import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from autoscheduler.core.config_manager import Config
from autoscheduler.models.common import ensure_aware
from autoscheduler.models.enums import Priority, TaskStatus
from autoscheduler.models.preferences import Preferences, resolve_preferences
from autoscheduler.models.schedule import ScheduledPlacement, placement_from_dict
from autoscheduler.models.tasks import Task, task_from_dict
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    duration_min INTEGER NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    deadline TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS time_blocks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    title TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'scheduled',
    locked INTEGER NOT NULL DEFAULT 0,
    google_event_id TEXT
);

CREATE INDEX IF NOT EXISTS idx_time_blocks_user ON time_blocks (user_id, start_time);

CREATE TABLE IF NOT EXISTS preferences (
    user_id TEXT PRIMARY KEY,
    work_start_hour INTEGER,
    work_end_hour INTEGER,
    buffer_minutes INTEGER,
    prefer_morning INTEGER,
    allow_weekend INTEGER,
    default_duration_min INTEGER,
    time_zone TEXT,
    suggest_time INTEGER
);
"""

PREFERENCE_COLUMNS = [
    'work_start_hour',
    'work_end_hour',
    'buffer_minutes',
    'prefer_morning',
    'allow_weekend',
    'default_duration_min',
    'time_zone',
    'suggest_time',
]

PENDING_STATUSES = (TaskStatus.PENDING.value, TaskStatus.UNSCHEDULED.value)


def _iso(moment: datetime.datetime) -> str:
    return ensure_aware(moment).isoformat()


class SchedulerStore:
    """
    SQLite persistence for tasks, time blocks and preferences.

    One connection is held for the lifetime of the store so that
    ``":memory:"`` databases keep their contents between calls.
    """

    def __init__(self, db_path: Union[str, Path] = Config.DB_PATH):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.init_schema()

    def init_schema(self) -> None:
        """Create tables if they do not exist yet."""
        with self.conn:
            self.conn.executescript(SCHEMA)
        logger.debug(f"Database ready at {self.db_path}")

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        user_id: str,
        title: str,
        duration_min: int,
        priority: Union[Priority, str] = Priority.MEDIUM,
        deadline: Optional[Union[datetime.date, str]] = None,
        status: Union[TaskStatus, str] = TaskStatus.PENDING,
    ) -> Task:
        """
        Validate and insert a new task.

        Raises:
            ValueError: if the task fields are invalid
        """
        task = Task(
            id=uuid.uuid4().hex,
            title=title,
            duration_min=duration_min,
            priority=priority,
            deadline=deadline,
            status=status,
        )
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO tasks (id, user_id, title, duration_min, priority, deadline, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    user_id,
                    task.title,
                    task.duration_min,
                    task.priority.value,
                    task.deadline.isoformat() if task.deadline else None,
                    task.status.value,
                    datetime.datetime.now(datetime.timezone.utc).isoformat(),
                ),
            )
        logger.debug(f"Stored task {task.id} '{task.title}'")
        return task

    def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        row = self.conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        ).fetchone()
        return task_from_dict(dict(row)) if row else None

    def get_task_rows(
        self, user_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Dict[str, Any]]:
        """Raw task rows, oldest first, for callers that validate records themselves."""
        query = "SELECT * FROM tasks WHERE user_id = ?"
        params: List[Any] = [user_id]
        if statuses is not None:
            wanted = list(statuses)
            query += f" AND status IN ({','.join('?' * len(wanted))})"
            params.extend(wanted)
        query += " ORDER BY created_at, rowid"
        return [dict(row) for row in self.conn.execute(query, params).fetchall()]

    def list_pending_tasks(self, user_id: str) -> List[Task]:
        """
        Tasks waiting for a slot (pending or previously unscheduled), oldest first.

        Rows that no longer validate are skipped with a warning.
        """
        tasks = []
        for row in self.get_task_rows(user_id, PENDING_STATUSES):
            try:
                tasks.append(task_from_dict(row))
            except ValueError as e:
                logger.warning(f"Skipping invalid task row {row['id']}: {e}")
        return tasks

    def set_status(self, task_id: str, status: Union[TaskStatus, str]) -> None:
        value = status.value if isinstance(status, TaskStatus) else TaskStatus(status).value
        with self.conn:
            self.conn.execute("UPDATE tasks SET status = ? WHERE id = ?", (value, task_id))

    def delete_task(self, user_id: str, task_id: str) -> bool:
        """Delete a task together with its time blocks. Returns True if it existed."""
        with self.conn:
            self.conn.execute(
                "DELETE FROM time_blocks WHERE user_id = ? AND task_id = ?", (user_id, task_id)
            )
            cursor = self.conn.execute(
                "DELETE FROM tasks WHERE user_id = ? AND id = ?", (user_id, task_id)
            )
        return cursor.rowcount > 0

    def reset_scheduled_tasks(self, user_id: str) -> int:
        """Put every scheduled task back to pending. Returns the number reset."""
        with self.conn:
            cursor = self.conn.execute(
                "UPDATE tasks SET status = ? WHERE user_id = ? AND status = ?",
                (TaskStatus.PENDING.value, user_id, TaskStatus.SCHEDULED.value),
            )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Time blocks
    # ------------------------------------------------------------------

    def _placements(self, query: str, params: Iterable[Any]) -> List[ScheduledPlacement]:
        rows = self.conn.execute(query, tuple(params)).fetchall()
        return [placement_from_dict(dict(row)) for row in rows]

    def list_placements(self, user_id: str) -> List[ScheduledPlacement]:
        return self._placements(
            "SELECT * FROM time_blocks WHERE user_id = ? ORDER BY start_time, id", (user_id,)
        )

    def list_locked_placements(self, user_id: str) -> List[ScheduledPlacement]:
        return self._placements(
            "SELECT * FROM time_blocks WHERE user_id = ? AND locked = 1 ORDER BY start_time, id",
            (user_id,),
        )

    def list_unlocked_placements(self, user_id: str) -> List[ScheduledPlacement]:
        return self._placements(
            "SELECT * FROM time_blocks WHERE user_id = ? AND locked = 0 ORDER BY start_time, id",
            (user_id,),
        )

    def get_placement(self, user_id: str, block_id: int) -> Optional[ScheduledPlacement]:
        found = self._placements(
            "SELECT * FROM time_blocks WHERE user_id = ? AND id = ?", (user_id, block_id)
        )
        return found[0] if found else None

    def _insert_placement(self, user_id: str, placement: ScheduledPlacement) -> ScheduledPlacement:
        cursor = self.conn.execute(
            """
            INSERT INTO time_blocks
                (user_id, task_id, title, start_time, end_time, priority, status, locked, google_event_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                placement.task_id,
                placement.title,
                _iso(placement.start),
                _iso(placement.end),
                placement.priority.value,
                placement.status,
                1 if placement.locked else 0,
                placement.external_ref,
            ),
        )
        placement.id = cursor.lastrowid
        return placement

    def replace_unlocked_placements(
        self,
        user_id: str,
        placements: List[ScheduledPlacement],
        task_ids: Optional[Iterable[str]] = None,
    ) -> List[ScheduledPlacement]:
        """
        Atomically swap the user's unlocked time blocks for `placements`.

        Args:
            user_id: Owner of the blocks
            placements: New placements; their ``id`` is filled in
            task_ids: When given, only unlocked blocks of these tasks are
                deleted; otherwise every unlocked block of the user is

        Returns:
            The inserted placements
        """
        with self.conn:
            if task_ids is None:
                self.conn.execute(
                    "DELETE FROM time_blocks WHERE user_id = ? AND locked = 0", (user_id,)
                )
            else:
                ids = list(task_ids)
                if ids:
                    self.conn.execute(
                        f"""
                        DELETE FROM time_blocks
                        WHERE user_id = ? AND locked = 0 AND task_id IN ({','.join('?' * len(ids))})
                        """,
                        (user_id, *ids),
                    )
            inserted = [self._insert_placement(user_id, p) for p in placements]

        logger.info(f"Stored {len(inserted)} time blocks for user {user_id}")
        return inserted

    def update_placement(
        self,
        user_id: str,
        block_id: int,
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> Optional[ScheduledPlacement]:
        """
        Move a block by hand. Manual edits lock the block.

        Raises:
            ValueError: if end is not after start
        """
        if end <= start:
            raise ValueError("Time block end must be after start")
        with self.conn:
            cursor = self.conn.execute(
                """
                UPDATE time_blocks SET start_time = ?, end_time = ?, locked = 1
                WHERE user_id = ? AND id = ?
                """,
                (_iso(start), _iso(end), user_id, block_id),
            )
        if cursor.rowcount == 0:
            return None
        return self.get_placement(user_id, block_id)

    def set_external_ref(self, block_id: int, external_ref: Optional[str]) -> None:
        with self.conn:
            self.conn.execute(
                "UPDATE time_blocks SET google_event_id = ? WHERE id = ?", (external_ref, block_id)
            )

    def update_placement_times_by_ref(
        self,
        user_id: str,
        external_ref: str,
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> int:
        """Follow a calendar event that moved. Locked blocks are left alone."""
        with self.conn:
            cursor = self.conn.execute(
                """
                UPDATE time_blocks SET start_time = ?, end_time = ?
                WHERE user_id = ? AND google_event_id = ? AND locked = 0
                """,
                (_iso(start), _iso(end), user_id, external_ref),
            )
        return cursor.rowcount

    def delete_placements(
        self, user_id: str, task_id: Optional[str] = None
    ) -> List[ScheduledPlacement]:
        """
        Delete the user's time blocks, or only those of one task.

        Returns:
            The deleted placements, so their calendar events can be removed
        """
        if task_id is None:
            doomed = self.list_placements(user_id)
            query, params = "DELETE FROM time_blocks WHERE user_id = ?", (user_id,)
        else:
            doomed = self._placements(
                "SELECT * FROM time_blocks WHERE user_id = ? AND task_id = ?", (user_id, task_id)
            )
            query, params = "DELETE FROM time_blocks WHERE user_id = ? AND task_id = ?", (user_id, task_id)

        with self.conn:
            self.conn.execute(query, params)
        return doomed

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def get_preferences(self, user_id: str) -> Preferences:
        """Stored preferences merged onto the default set."""
        row = self.conn.execute(
            "SELECT * FROM preferences WHERE user_id = ?", (user_id,)
        ).fetchone()
        stored = {k: row[k] for k in PREFERENCE_COLUMNS} if row else None
        return resolve_preferences(stored, Config.DEFAULT_PREFERENCES)

    def save_preferences(self, user_id: str, prefs: Preferences) -> None:
        values = prefs.to_dict()
        placeholders = ', '.join('?' * (len(PREFERENCE_COLUMNS) + 1))
        with self.conn:
            self.conn.execute(
                f"INSERT OR REPLACE INTO preferences (user_id, {', '.join(PREFERENCE_COLUMNS)}) "
                f"VALUES ({placeholders})",
                (user_id, *[values[c] for c in PREFERENCE_COLUMNS]),
            )
        logger.info(f"Saved preferences for user {user_id}")

    # ------------------------------------------------------------------

    def purge_user(self, user_id: str) -> Dict[str, int]:
        """Remove every record of a user. Returns deleted row counts per table."""
        counts = {}
        with self.conn:
            for table in ('time_blocks', 'tasks', 'preferences'):
                cursor = self.conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
                counts[table] = cursor.rowcount
        logger.info(f"Purged user {user_id}: {counts}")
        return counts
