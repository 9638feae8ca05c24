# File: autoscheduler/scheduling/intervals.py
"""
Interval arithmetic on absolute (timezone-aware) instants.

Busy intervals mark time the scheduler must not use; time windows are the
free spans left over. Every function returns new objects and leaves its
inputs untouched.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List, Tuple

from autoscheduler.models.common import ensure_aware


@dataclass(frozen=True)
class BusyInterval:
    """A span the scheduler must not place tasks into."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Busy interval must end after it starts: {self.start} - {self.end}")


@dataclass(frozen=True)
class TimeWindow:
    """A free span; computed per run and never persisted."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Window cannot end before it starts: {self.start} - {self.end}")

    @property
    def duration_min(self) -> float:
        return (self.end - self.start).total_seconds() / 60


def overlaps(a, b) -> bool:
    """True if the half-open spans [a.start, a.end) and [b.start, b.end) intersect."""
    return a.start < b.end and b.start < a.end


def subtract(window: TimeWindow, busy: BusyInterval) -> List[TimeWindow]:
    """
    Remove the part of `window` covered by `busy`.

    Returns 0, 1 or 2 windows in start order.
    """
    if not overlaps(window, busy):
        return [window]

    pieces = []
    if busy.start > window.start:
        pieces.append(TimeWindow(window.start, busy.start))
    if busy.end < window.end:
        pieces.append(TimeWindow(busy.end, window.end))
    return pieces


def expand(interval: BusyInterval, buffer_minutes: int) -> BusyInterval:
    """Grow both ends of `interval` by `buffer_minutes`."""
    if buffer_minutes < 0:
        raise ValueError("buffer_minutes cannot be negative")
    pad = timedelta(minutes=buffer_minutes)
    return BusyInterval(interval.start - pad, interval.end + pad)


def merge(intervals: Iterable[BusyInterval]) -> List[BusyInterval]:
    """Collapse overlapping or touching intervals into a sorted, disjoint list."""
    merged: List[BusyInterval] = []
    for interval in sorted(intervals, key=lambda i: (i.start, i.end)):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = BusyInterval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def busy_from_spans(spans: Iterable, buffer_minutes: int = 0) -> List[BusyInterval]:
    """
    Turn anything with `start`/`end` datetimes (calendar events, placements)
    into buffer-expanded busy intervals sorted by start.

    Spans with a non-positive length are skipped.
    """
    busy = []
    for span in spans:
        start = ensure_aware(span.start)
        end = ensure_aware(span.end)
        if end <= start:
            continue
        busy.append(expand(BusyInterval(start, end), buffer_minutes))
    busy.sort(key=lambda i: (i.start, i.end))
    return busy


# Events and placements share the same shape
busy_from_events = busy_from_spans
busy_from_placements = busy_from_spans


def iter_gaps(
    busy: List[BusyInterval],
    start: datetime,
    end: datetime,
) -> Iterator[Tuple[datetime, datetime]]:
    """
    Walk start-sorted busy intervals across [start, end) and yield the free
    gaps between them.

    The cursor only ever moves forward (max of cursor and busy end), so
    overlapping busy intervals are tolerated. Intervals entirely outside the
    range contribute nothing.
    """
    cursor = start
    for interval in busy:
        if interval.end <= cursor:
            continue
        if interval.start >= end:
            break
        if interval.start > cursor:
            yield cursor, interval.start
        cursor = max(cursor, interval.end)
        if cursor >= end:
            return
    if cursor < end:
        yield cursor, end


def round_up_to_step(moment: datetime, step_minutes: int = 5) -> datetime:
    """Round up to the next `step_minutes` boundary, dropping seconds."""
    remainder = moment.minute % step_minutes
    rounded = moment.replace(second=0, microsecond=0)
    if remainder:
        rounded += timedelta(minutes=step_minutes - remainder)
    return rounded
