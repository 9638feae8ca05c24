# File: autoscheduler/processors/schedule_processor.py
"""
Schedule post-processing: conflict checks, JSON export and a readable
agenda for the command line.
"""

import datetime
import json
from collections import defaultdict
from pathlib import Path
from typing import List, Optional

import pytz

from autoscheduler.core.config_manager import Config
from autoscheduler.models import ScheduledPlacement, Task
from autoscheduler.scheduling.intervals import BusyInterval, overlaps
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


class ScheduleProcessor:
    """Processes placement results after a scheduling run."""

    def __init__(self, timezone: str = Config.TARGET_TIMEZONE):
        """
        Initialize schedule processor.

        Args:
            timezone: Timezone name used for display (e.g., 'Europe/Amsterdam')
        """
        self.timezone = pytz.timezone(timezone)

    def find_conflicts(
        self,
        placements: List[ScheduledPlacement],
        busy: List[BusyInterval]
    ) -> List[ScheduledPlacement]:
        """Placements that intersect a busy interval or each other."""
        conflicts = []
        for index, placement in enumerate(placements):
            span = BusyInterval(placement.start, placement.end)
            clashes_busy = any(overlaps(span, b) for b in busy)
            clashes_peer = any(placement.overlaps_with(other) for other in placements[index + 1:])
            if clashes_busy or clashes_peer:
                logger.warning(
                    f"Conflict: '{placement.title}' at {placement.start.isoformat()}"
                )
                conflicts.append(placement)
        return conflicts

    def save_schedule(
        self,
        placements: List[ScheduledPlacement],
        unplaced: Optional[List[Task]] = None,
        filepath: Path = Config.SCHEDULE_OUTPUT_FILE
    ) -> bool:
        """
        Save the placements of a run to a JSON file.

        Args:
            placements: Placed time blocks
            unplaced: Tasks that found no window
            filepath: Output file path

        Returns:
            True if successful, False otherwise
        """
        try:
            data_to_save = {
                "placements": [p.to_dict() for p in placements],
                "unplaced": [t.to_dict() for t in (unplaced or [])],
                "generated_at": datetime.datetime.now(datetime.timezone.utc).isoformat()
            }

            filepath = Path(filepath)
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding="utf-8") as f:
                json.dump(data_to_save, f, indent=2, default=str, ensure_ascii=False)

            logger.info(f"Schedule saved to {filepath}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Could not save schedule: {e}", exc_info=True)
            return False

    def format_schedule(self, placements: List[ScheduledPlacement]) -> str:
        """Render placements grouped by local day."""
        if not placements:
            return "No time blocks scheduled."

        by_day = defaultdict(list)
        for placement in sorted(placements, key=lambda p: p.start):
            local_start = placement.start.astimezone(self.timezone)
            by_day[local_start.date()].append(placement)

        lines = []
        for day in sorted(by_day):
            lines.append(f"\n{day.strftime('%A, %B %d').upper()}")
            lines.append("-" * 60)
            for placement in by_day[day]:
                start = placement.start.astimezone(self.timezone).strftime('%H:%M')
                end = placement.end.astimezone(self.timezone).strftime('%H:%M')
                lock = " [LOCKED]" if placement.locked else ""
                lines.append(
                    f"  #{placement.id} {start} - {end}: {placement.title} "
                    f"({placement.priority.value}) task {placement.task_id}{lock}"
                )

        lines.append("")
        lines.append(f"Total time blocks: {len(placements)}")
        return "\n".join(lines)

    def format_tasks(self, tasks: List[Task]) -> str:
        """Render tasks waiting for a slot, with the ids the CLI expects."""
        if not tasks:
            return "No pending tasks."

        lines = []
        for task in tasks:
            lines.append(
                f"  {task.id}  [{task.status.value}] {task.title} "
                f"({task.duration_min} min, {task.priority.value}, due {task.deadline_str})"
            )
        lines.append("")
        lines.append(f"Total pending tasks: {len(tasks)}")
        return "\n".join(lines)
