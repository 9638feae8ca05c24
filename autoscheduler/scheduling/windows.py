# File: autoscheduler/scheduling/windows.py
"""
Free-window builder.

Turns buffer-expanded busy intervals into the ordered list of free working
windows over a horizon of days.
"""

import datetime
from typing import Iterator, List, Tuple

from autoscheduler.core.config_manager import Config
from autoscheduler.models.common import ensure_aware
from autoscheduler.models.preferences import Preferences
from autoscheduler.scheduling.intervals import BusyInterval, TimeWindow, iter_gaps
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)

MIN_WINDOW_MINUTES = Config.MIN_WINDOW_MINUTES


def is_weekend(day: datetime.date) -> bool:
    return day.weekday() >= 5


def local_time(day: datetime.date, hour: int, tz) -> datetime.datetime:
    """Aware instant for `hour`:00 on `day` in `tz`."""
    return tz.localize(datetime.datetime.combine(day, datetime.time(hour, 0)))


def iter_workdays(
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int,
) -> Iterator[Tuple[int, datetime.date, datetime.datetime, datetime.datetime]]:
    """
    Yield (offset, local_date, day_start, day_end) for each working day in
    the horizon, skipping weekends unless the preferences allow them.

    Days are counted in the preference timezone, starting from the local
    date of `now`.
    """
    tz = prefs.tz()
    today = ensure_aware(now).astimezone(tz).date()

    for offset in range(horizon_days):
        day = today + datetime.timedelta(days=offset)
        if not prefs.allow_weekend and is_weekend(day):
            continue
        yield (
            offset,
            day,
            local_time(day, prefs.work_start_hour, tz),
            local_time(day, prefs.work_end_hour, tz),
        )


def build_windows(
    busy: List[BusyInterval],
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int,
    min_window_minutes: int = MIN_WINDOW_MINUTES,
) -> List[TimeWindow]:
    """
    Build the free windows for the next `horizon_days` days.

    Args:
        busy: Busy intervals, already expanded by the buffer
        prefs: Working hours, weekend policy and timezone label
        now: Current instant; today's windows never start before it
        horizon_days: Number of days to consider, today included
        min_window_minutes: Gaps shorter than this are dropped

    Returns:
        Non-overlapping windows sorted by start
    """
    now = ensure_aware(now)
    ordered = sorted(busy, key=lambda i: (i.start, i.end))
    floor = datetime.timedelta(minutes=min_window_minutes)
    windows: List[TimeWindow] = []

    for offset, day, day_start, day_end in iter_workdays(prefs, now, horizon_days):
        start = max(day_start, now) if offset == 0 else day_start
        if start >= day_end:
            logger.debug(f"Workday {day} already over")
            continue

        for gap_start, gap_end in iter_gaps(ordered, start, day_end):
            if gap_end - gap_start >= floor:
                windows.append(TimeWindow(gap_start, gap_end))

    logger.debug(f"Built {len(windows)} free windows over {horizon_days} days")
    return windows
