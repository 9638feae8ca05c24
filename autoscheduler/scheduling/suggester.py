# File: autoscheduler/scheduling/suggester.py
"""
Single-task slot suggestion.

Two interchangeable policies over the same busy-interval model:

- first fit (`suggest_next_slot`): the earliest gap that holds the task,
  trying the morning first when the user prefers mornings. Cheap and
  deterministic, used for bulk reshuffling.
- best of (`suggest_best_slot`): the first-fit slot of every free window is
  scored and the lowest score wins, trading a little lookahead for nicer
  interactive placements.

Neither policy looks at deadlines; only the greedy placer enforces them.
"""

import datetime
from dataclasses import dataclass
from typing import List, Optional

from autoscheduler.models.common import ensure_aware
from autoscheduler.models.preferences import Preferences
from autoscheduler.scheduling.intervals import BusyInterval, iter_gaps
from autoscheduler.scheduling.windows import iter_workdays, local_time
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)

NOON = 12
MORNING_BONUS_HOURS = 6
LEFTOVER_WEIGHT = 0.05
LEFTOVER_CAP_HOURS = 8


@dataclass(frozen=True)
class SlotCandidate:
    """First-fit slot inside one free window, with its score."""
    start: datetime.datetime
    window_end: datetime.datetime
    score: float


def _first_fit(busy, start, end, duration) -> Optional[datetime.datetime]:
    for gap_start, gap_end in iter_gaps(busy, start, end):
        if gap_end - gap_start >= duration:
            return gap_start
    return None


def suggest_next_slot(
    busy: List[BusyInterval],
    duration_min: int,
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int = 14,
) -> Optional[datetime.datetime]:
    """
    Find the earliest start for a task of `duration_min` minutes.

    Args:
        busy: Buffer-expanded busy intervals. Callers that must avoid earlier
            auto-placements merge them in before calling.
        duration_min: Task length in minutes
        prefs: Working hours, weekend and morning preferences
        now: Current instant; nothing is suggested before it
        horizon_days: Days to search, today included

    Returns:
        Start instant, or None when nothing fits within the horizon
    """
    now = ensure_aware(now)
    ordered = sorted(busy, key=lambda i: (i.start, i.end))
    duration = datetime.timedelta(minutes=duration_min)
    tz = prefs.tz()

    for offset, day, day_start, day_end in iter_workdays(prefs, now, horizon_days):
        floor = max(day_start, now) if offset == 0 else day_start

        attempts = []
        if prefs.prefer_morning:
            morning_end = local_time(day, min(NOON, prefs.work_end_hour), tz)
            if morning_end > day_start:
                attempts.append((day_start, morning_end))
        attempts.append((day_start, day_end))

        for window_start, window_end in attempts:
            cursor = max(window_start, floor)
            if cursor >= window_end:
                continue
            found = _first_fit(ordered, cursor, window_end, duration)
            if found is not None:
                return found

    logger.debug(f"No {duration_min} min slot within {horizon_days} days")
    return None


def score_slot(
    start: datetime.datetime,
    window_end: datetime.datetime,
    duration_min: int,
    prefs: Preferences,
    now: datetime.datetime,
) -> float:
    """
    Lower is better: sooner, in the morning (when preferred), and leaving
    less unusable time behind in the window.
    """
    hours_from_now = (start - ensure_aware(now)).total_seconds() / 3600
    leftover = window_end - start - datetime.timedelta(minutes=duration_min)
    leftover_hours = leftover.total_seconds() / 3600

    score = hours_from_now + LEFTOVER_WEIGHT * min(leftover_hours, LEFTOVER_CAP_HOURS)
    if prefs.prefer_morning and start.astimezone(prefs.tz()).hour < NOON:
        score -= MORNING_BONUS_HOURS
    return score


def collect_candidates(
    busy: List[BusyInterval],
    duration_min: int,
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int = 14,
) -> List[SlotCandidate]:
    """One scored candidate per free window that can hold the task, in time order."""
    now = ensure_aware(now)
    ordered = sorted(busy, key=lambda i: (i.start, i.end))
    duration = datetime.timedelta(minutes=duration_min)
    candidates: List[SlotCandidate] = []

    for offset, _day, day_start, day_end in iter_workdays(prefs, now, horizon_days):
        start = max(day_start, now) if offset == 0 else day_start
        if start >= day_end:
            continue
        for gap_start, gap_end in iter_gaps(ordered, start, day_end):
            if gap_end - gap_start < duration:
                continue
            candidates.append(SlotCandidate(
                start=gap_start,
                window_end=gap_end,
                score=score_slot(gap_start, gap_end, duration_min, prefs, now),
            ))

    return candidates


def suggest_best_slot(
    busy: List[BusyInterval],
    duration_min: int,
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int = 14,
) -> Optional[datetime.datetime]:
    """
    Pick the lowest-scoring first-fit slot across all windows in the horizon.

    Ties go to the earlier slot. Returns None when no window can hold the
    task.
    """
    candidates = collect_candidates(busy, duration_min, prefs, now, horizon_days)
    if not candidates:
        logger.debug(f"No candidates for a {duration_min} min task")
        return None

    best = min(candidates, key=lambda c: c.score)
    logger.debug(f"Best of {len(candidates)} candidates: {best.start.isoformat()} (score {best.score:.2f})")
    return best.start
