# File: autoscheduler/scheduling/placer.py
"""
Greedy placement of ranked tasks into free windows.
"""

import datetime
from typing import List, Optional

import pytz

from autoscheduler.models.schedule import PlacementResult, ScheduledPlacement
from autoscheduler.models.tasks import Task
from autoscheduler.scheduling.intervals import TimeWindow
from autoscheduler.scheduling.windows import MIN_WINDOW_MINUTES
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


def deadline_cutoff(deadline: datetime.date, tz) -> datetime.datetime:
    """Last instant of the deadline day in `tz`."""
    return tz.localize(datetime.datetime.combine(deadline, datetime.time.max))


def place_tasks(
    ranked_tasks: List[Task],
    windows: List[TimeWindow],
    time_zone: Optional[str] = None,
    min_window_minutes: int = MIN_WINDOW_MINUTES,
) -> PlacementResult:
    """
    Assign each task, in rank order, to the earliest window that can hold it.

    A window is skipped when it is shorter than the task or when the task
    would end after the end of its deadline day; the whole window list is
    scanned before giving up on a task. The consumed window shrinks to start
    at the placement's end if at least `min_window_minutes` remain,
    otherwise it is dropped. No backtracking: an earlier placement is never
    displaced.

    Args:
        ranked_tasks: Tasks already ordered by the ranker
        windows: Free windows sorted by start (not modified)
        time_zone: Label used to find the end of a deadline day

    Returns:
        PlacementResult with placements and the tasks that did not fit
    """
    tz = pytz.timezone(time_zone or "UTC")
    available = list(windows)
    result = PlacementResult()

    for task in ranked_tasks:
        duration = datetime.timedelta(minutes=task.duration_min)
        cutoff = deadline_cutoff(task.deadline, tz) if task.deadline else None
        placed = False

        for index, window in enumerate(available):
            if window.duration_min < task.duration_min:
                continue

            start = window.start
            end = start + duration
            if cutoff is not None and end > cutoff:
                continue

            result.placements.append(ScheduledPlacement(
                task_id=task.id,
                title=task.title,
                start=start,
                end=end,
                priority=task.priority,
            ))

            if window.duration_min - task.duration_min >= min_window_minutes:
                available[index] = TimeWindow(end, window.end)
            else:
                del available[index]

            placed = True
            break

        if not placed:
            logger.debug(f"No window fits '{task.title}' ({task.duration_min} min, deadline {task.deadline_str})")
            result.unplaced.append(task)

    logger.info(
        f"Placed {len(result.placements)} tasks, {len(result.unplaced)} without a slot"
    )
    return result
