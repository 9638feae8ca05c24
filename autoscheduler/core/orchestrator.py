# File: autoscheduler/core/orchestrator.py
"""
Main orchestrator module for the task auto-scheduler.
Coordinates the store, the calendar and the scheduling core.

Every operation returns a RunSummary. A failing calendar or store call for
one item is recorded in the summary and the run continues; only failures
that make the whole run meaningless (the calendar cannot be read, the
store cannot be written) abort it.
"""

import datetime
import sqlite3
from typing import Any, Dict, List, Optional

from autoscheduler.core.config_manager import Config
from autoscheduler.llm.client import TaskTextParser
from autoscheduler.models import (
    ParsedTask,
    Preferences,
    RunSummary,
    ScheduledPlacement,
    TaskStatus,
    ValidationError,
    build_ai_description,
    ensure_aware,
    resolve_preferences,
)
from autoscheduler.processors.schedule_processor import ScheduleProcessor
from autoscheduler.processors.task_processor import TaskProcessor
from autoscheduler.scheduling import (
    build_windows,
    busy_from_events,
    busy_from_placements,
    place_tasks,
    reshuffle as reshuffle_events,
    round_up_to_step,
    suggest_best_slot,
    suggest_next_slot,
)
from autoscheduler.auth.google_auth import get_calendar_service
from autoscheduler.services.calendar_service import GoogleCalendarService
from autoscheduler.services.service_factory import ServiceFactory
from autoscheduler.services.store import PENDING_STATUSES, SchedulerStore
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


class SchedulingOrchestrator:
    """
    Runs scheduling operations for one user at a time.

    Collaborators are injected so tests can pass fakes; `now` is always an
    explicit argument.
    """

    def __init__(
        self,
        calendar: GoogleCalendarService,
        store: SchedulerStore,
        parser: Optional[TaskTextParser] = None,
        horizon_days: int = Config.SCHEDULE_HORIZON_DAYS,
        suggest_horizon_days: int = Config.SUGGEST_HORIZON_DAYS,
        suggest_strategy: str = Config.SUGGEST_STRATEGY,
        marker: str = Config.AI_MARKER
    ):
        if suggest_strategy not in Config.SUGGEST_STRATEGIES:
            raise ValueError(f"Unknown suggest strategy: {suggest_strategy!r}")

        self.calendar = calendar
        self.store = store
        self.parser = parser
        self.horizon_days = horizon_days
        self.suggest_horizon_days = suggest_horizon_days
        self.suggest_strategy = suggest_strategy
        self.marker = marker
        self.task_processor = TaskProcessor()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _time_zone(self, prefs: Preferences) -> str:
        return prefs.time_zone or Config.TARGET_TIMEZONE

    def _description(self, duration_min: int, task_id: str) -> str:
        return build_ai_description(self.marker, {'durationMin': duration_min, 'taskId': task_id})

    def _delete_mirrors(self, placements: List[ScheduledPlacement], summary: RunSummary) -> int:
        """Delete the calendar events of `placements`; shortfalls become failures."""
        refs = [p.external_ref for p in placements if p.external_ref]
        if not refs:
            return 0
        deleted = self.calendar.delete_events(refs)
        if deleted < len(refs):
            summary.add_failure(f"{len(refs) - deleted} of {len(refs)} calendar events could not be deleted")
        return deleted

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate_schedule(
        self,
        user_id: str,
        now: datetime.datetime,
        export: bool = False
    ) -> RunSummary:
        """
        Regenerate the user's schedule.

        Steps:
            1. Read the calendar for the horizon
            2. Requeue tasks held by unlocked blocks and delete their events
            3. Busy = foreign events + locked blocks, buffer-expanded
            4. Rank pending tasks, build windows, place greedily
            5. Replace unlocked blocks, mirror each to a new calendar event
            6. Mark tasks scheduled or unscheduled

        Args:
            user_id: Owner of the tasks
            now: Current instant
            export: Also write the result to Config.SCHEDULE_OUTPUT_FILE

        Returns:
            RunSummary with placed/unplaced counts
        """
        now = ensure_aware(now)
        summary = RunSummary()
        logger.info("=" * 60)
        logger.info(f"Generating schedule for user {user_id}")
        logger.info("=" * 60)

        try:
            prefs = self.store.get_preferences(user_id)
            time_zone = self._time_zone(prefs)

            # Step 1: Read calendar before touching anything
            try:
                events = self.calendar.list_events(now, now + datetime.timedelta(days=self.horizon_days))
            except ConnectionError as e:
                return summary.abort(str(e))

            # Step 2: Requeue unlocked blocks
            stale = self.store.list_unlocked_placements(user_id)
            stale_refs = {p.external_ref for p in stale if p.external_ref}
            self._delete_mirrors(stale, summary)
            for task_id in {p.task_id for p in stale}:
                self.store.set_status(task_id, TaskStatus.PENDING)
            logger.info(f"Requeued {len(stale)} unlocked time blocks")

            # Step 3: Busy intervals
            locked = self.store.list_locked_placements(user_id)
            foreign = [e for e in events if e.event_id not in stale_refs]
            busy = busy_from_events(foreign, prefs.buffer_minutes) + \
                busy_from_placements(locked, prefs.buffer_minutes)
            busy.sort(key=lambda i: (i.start, i.end))

            # Step 4: Rank, window, place
            rows = self.store.get_task_rows(user_id, PENDING_STATUSES)
            ranked, rejected = self.task_processor.process_tasks(rows)
            summary.rejected = rejected

            windows = build_windows(busy, prefs, now, self.horizon_days)
            result = place_tasks(ranked, windows, time_zone)

            processor = ScheduleProcessor(time_zone)
            for conflict in processor.find_conflicts(result.placements, busy):
                summary.reasons.append(f"'{conflict.title}' overlaps busy time")

            # Step 5: Persist and mirror
            stored = self.store.replace_unlocked_placements(user_id, result.placements)
            for placement in stored:
                event_id = self.calendar.create_event(
                    placement.title,
                    placement.start,
                    placement.end,
                    time_zone=time_zone,
                    description=self._description(placement.duration_min, placement.task_id),
                )
                if not event_id:
                    summary.add_failure(f"Calendar event for '{placement.title}' was not created")

                try:
                    if event_id:
                        self.store.set_external_ref(placement.id, event_id)
                        placement.external_ref = event_id
                    # Placed even when the mirror failed
                    self.store.set_status(placement.task_id, TaskStatus.SCHEDULED)
                except sqlite3.Error as e:
                    logger.error(f"Store failure for '{placement.title}': {e}", exc_info=True)
                    summary.add_failure(f"Time block for '{placement.title}' not fully saved: {e}")

            # Step 6: Unplaced tasks
            for task in result.unplaced:
                try:
                    self.store.set_status(task.id, TaskStatus.UNSCHEDULED)
                except sqlite3.Error as e:
                    summary.add_failure(f"Status of '{task.title}' not saved: {e}")

        except sqlite3.Error as e:
            logger.error(f"Store failure while generating schedule: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        summary.placed = len(stored)
        summary.unplaced = len(result.unplaced)
        summary.placements = stored

        if export:
            processor.save_schedule(stored, result.unplaced)

        logger.info(
            f"Schedule done: {summary.placed} placed, {summary.unplaced} unplaced, "
            f"{summary.failed} failures"
        )
        return summary

    def suggest_slot(
        self,
        user_id: str,
        duration_min: int,
        prefs: Preferences,
        now: datetime.datetime
    ) -> Optional[datetime.datetime]:
        """
        Find a start for one new task around the calendar and every stored block.

        Raises:
            ConnectionError: if the calendar cannot be read
        """
        events = self.calendar.list_events(now, now + datetime.timedelta(days=self.suggest_horizon_days))
        busy = busy_from_events(events, prefs.buffer_minutes) + \
            busy_from_placements(self.store.list_placements(user_id), prefs.buffer_minutes)
        busy.sort(key=lambda i: (i.start, i.end))

        if self.suggest_strategy == "first":
            return suggest_next_slot(busy, duration_min, prefs, now, self.suggest_horizon_days)
        return suggest_best_slot(busy, duration_min, prefs, now, self.suggest_horizon_days)

    def add_task(
        self,
        user_id: str,
        text: str,
        now: datetime.datetime,
        overrides: Optional[Dict[str, Any]] = None
    ) -> RunSummary:
        """
        Create a task from free text and put it on the calendar right away.

        The parser may supply a title, duration, priority, deadline and an
        explicit start. Without a start, a slot is suggested; if none fits
        (or suggestion is off) the task starts at `now` rounded up to five
        minutes. Only suggested placements carry the AI marker and remain
        movable; an explicit start is stored as a locked block.

        Args:
            user_id: Owner of the task
            text: Raw task text
            now: Current instant
            overrides: Per-request preference overrides

        Returns:
            RunSummary whose `placements` holds the new block
        """
        now = ensure_aware(now)
        summary = RunSummary()

        if not text or not text.strip():
            summary.rejected.append(ValidationError(field='text', message='Task text cannot be empty'))
            return summary.abort("Task text cannot be empty")

        try:
            stored_prefs = self.store.get_preferences(user_id)
            prefs = resolve_preferences(overrides, stored_prefs.to_dict())
        except ValueError as e:
            summary.rejected.append(ValidationError(field='preferences', message=str(e)))
            return summary.abort(f"Invalid preferences: {e}")
        except sqlite3.Error as e:
            logger.error(f"Store failure reading preferences: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        time_zone = self._time_zone(prefs)

        parsed: Optional[ParsedTask] = None
        if self.parser is not None:
            parsed = self.parser.parse(text, now, time_zone, prefs.default_duration_min)
        if parsed is None:
            parsed = ParsedTask(title=text.strip(), duration_min=prefs.default_duration_min)

        start = parsed.start
        auto_placed = start is None

        if auto_placed and prefs.suggest_time:
            try:
                start = self.suggest_slot(user_id, parsed.duration_min, prefs, now)
            except ConnectionError as e:
                logger.warning(f"Slot suggestion skipped: {e}")
                summary.reasons.append(str(e))
            except sqlite3.Error as e:
                logger.warning(f"Slot suggestion skipped: {e}")
                summary.reasons.append(f"Store failure: {e}")

        if start is None:
            start = round_up_to_step(now, Config.ROUNDING_STEP_MINUTES)
            logger.info(f"No slot suggested; starting at {start.isoformat()}")

        end = start + datetime.timedelta(minutes=parsed.duration_min)

        try:
            task = self.store.add_task(
                user_id,
                parsed.title,
                parsed.duration_min,
                priority=parsed.priority,
                deadline=parsed.deadline,
                status=TaskStatus.SCHEDULED,
            )
        except ValueError as e:
            summary.rejected.append(ValidationError(field='task', message=str(e)))
            return summary.abort(f"Invalid task: {e}")
        except sqlite3.Error as e:
            logger.error(f"Store failure adding task: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        event_id = self.calendar.create_event(
            task.title,
            start,
            end,
            time_zone=time_zone,
            description=self._description(task.duration_min, task.id) if auto_placed else None,
            generated=auto_placed,
        )
        if not event_id:
            summary.add_failure(f"Calendar event for '{task.title}' was not created")

        placement = ScheduledPlacement(
            task_id=task.id,
            title=task.title,
            start=start,
            end=end,
            priority=task.priority,
            locked=not auto_placed,
            external_ref=event_id,
        )
        try:
            self.store.replace_unlocked_placements(user_id, [placement], task_ids=[task.id])
        except sqlite3.Error as e:
            logger.error(f"Store failure saving time block: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        summary.placed = 1
        summary.placements = [placement]
        logger.info(f"Added '{task.title}' at {start.isoformat()} ({task.duration_min} min)")
        return summary

    def reshuffle(self, user_id: str, now: datetime.datetime) -> RunSummary:
        """
        Move every unlocked auto-placed event to its earliest free slot.

        Events mirroring locked blocks stay put. Store rows follow the moved
        events.
        """
        now = ensure_aware(now)
        summary = RunSummary()

        try:
            prefs = self.store.get_preferences(user_id)
            pinned = [p.external_ref for p in self.store.list_locked_placements(user_id) if p.external_ref]
        except sqlite3.Error as e:
            logger.error(f"Store failure before reshuffle: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        try:
            events = self.calendar.list_events(
                now, now + datetime.timedelta(days=self.suggest_horizon_days)
            )
        except ConnectionError as e:
            return summary.abort(str(e))

        time_zone = self._time_zone(prefs)

        def update_event(event_id, start, end):
            return self.calendar.update_event(event_id, start=start, end=end, time_zone=time_zone)

        result = reshuffle_events(
            events,
            prefs,
            now,
            self.suggest_horizon_days,
            update_event,
            pinned_event_ids=pinned,
            marker=self.marker,
        )

        for move in result.moves:
            try:
                self.store.update_placement_times_by_ref(user_id, move.event_id, move.new_start, move.new_end)
            except sqlite3.Error as e:
                logger.error(f"Store failure following '{move.summary}': {e}", exc_info=True)
                summary.add_failure(f"Time block for '{move.summary}' not updated: {e}")

        for _ in range(result.failed):
            summary.add_failure("Calendar event update failed")

        summary.updated = result.updated
        summary.unplaced = result.skipped
        return summary

    def update_time_block(
        self,
        user_id: str,
        block_id: int,
        start: datetime.datetime,
        end: datetime.datetime
    ) -> RunSummary:
        """Manually move a block; it becomes locked and its event follows."""
        summary = RunSummary()
        start, end = ensure_aware(start), ensure_aware(end)

        if end <= start:
            summary.rejected.append(ValidationError(field='end', message='End must be after start'))
            return summary.abort("End must be after start")

        try:
            placement = self.store.update_placement(user_id, block_id, start, end)
            prefs = self.store.get_preferences(user_id)
        except sqlite3.Error as e:
            logger.error(f"Store failure updating block {block_id}: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        if placement is None:
            return summary.abort(f"Time block {block_id} not found")

        if placement.external_ref:
            ok = self.calendar.update_event(
                placement.external_ref, start=start, end=end, time_zone=self._time_zone(prefs)
            )
            if not ok:
                summary.add_failure(f"Calendar event for '{placement.title}' was not updated")

        summary.updated = 1
        summary.placements = [placement]
        return summary

    def delete_task(self, user_id: str, task_id: str) -> RunSummary:
        """Delete a task, its blocks and their calendar events."""
        summary = RunSummary()
        try:
            if self.store.get_task(user_id, task_id) is None:
                return summary.abort(f"Task {task_id} not found")

            placements = [p for p in self.store.list_placements(user_id) if p.task_id == task_id]
            self._delete_mirrors(placements, summary)
            self.store.delete_task(user_id, task_id)
        except sqlite3.Error as e:
            logger.error(f"Store failure deleting task {task_id}: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        summary.removed = 1
        logger.info(f"Deleted task {task_id} and {len(placements)} time blocks")
        return summary

    def clear_schedule(self, user_id: str) -> RunSummary:
        """Remove every block and its event; scheduled tasks go back to pending."""
        summary = RunSummary()
        try:
            placements = self.store.list_placements(user_id)
            self._delete_mirrors(placements, summary)
            reset = self.store.reset_scheduled_tasks(user_id)
            self.store.delete_placements(user_id)
        except sqlite3.Error as e:
            logger.error(f"Store failure clearing schedule: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        summary.removed = len(placements)
        summary.updated = reset
        logger.info(f"Cleared {len(placements)} time blocks; {reset} tasks back to pending")
        return summary

    def purge(self, user_id: str) -> RunSummary:
        """Delete everything the user has, calendar mirrors included."""
        summary = RunSummary()
        try:
            self._delete_mirrors(self.store.list_placements(user_id), summary)
            counts = self.store.purge_user(user_id)
        except sqlite3.Error as e:
            logger.error(f"Store failure purging user {user_id}: {e}", exc_info=True)
            return summary.abort(f"Store failure: {e}")

        summary.removed = counts.get('tasks', 0)
        return summary


class OrchestratorFactory:
    """Factory for creating orchestrators with dependency injection."""

    @staticmethod
    def create(db_path: Optional[str] = None) -> SchedulingOrchestrator:
        """
        Create a fully initialized orchestrator.

        Raises:
            ValueError: If configuration is invalid
            ConnectionError: If authentication fails
        """
        logger.info("Creating orchestrator via factory")

        if not Config.validate():
            raise ValueError(
                "Configuration validation failed. "
                "Please run 'python scripts/setup.py' first."
            )

        resource = get_calendar_service()
        if resource is None:
            raise ConnectionError(
                "Google authentication failed. Run 'python scripts/setup.py' first."
            )

        return SchedulingOrchestrator(
            calendar=ServiceFactory.create_calendar_service(resource),
            store=ServiceFactory.create_store(db_path),
            parser=ServiceFactory.create_parser(),
        )
