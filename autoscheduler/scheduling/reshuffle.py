# File: autoscheduler/scheduling/reshuffle.py
"""
Reshuffle pass: re-place every auto-managed calendar event around the
events the scheduler does not own.
"""

import datetime
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from autoscheduler.core.config_manager import Config
from autoscheduler.models.calendar import CalendarEvent, parse_ai_metadata
from autoscheduler.models.common import ensure_aware
from autoscheduler.models.preferences import Preferences
from autoscheduler.scheduling.intervals import BusyInterval, busy_from_events, expand
from autoscheduler.scheduling.suggester import suggest_next_slot
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)

# update_event(event_id, start=..., end=...) -> truthy on success
EventUpdater = Callable[..., bool]


@dataclass
class ReshuffleMove:
    event_id: str
    summary: str
    old_start: datetime.datetime
    new_start: datetime.datetime
    new_end: datetime.datetime


@dataclass
class ReshuffleResult:
    """Counts for one pass; `updated` only counts confirmed writes."""
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    moves: List[ReshuffleMove] = field(default_factory=list)


def recover_duration(event: CalendarEvent, prefs: Preferences, marker: str = Config.AI_MARKER) -> int:
    """
    Intended length of an auto-managed event in minutes.

    Prefers the `durationMin` stored with the marker (clamped to the allowed
    task range), then the observed length, then the default duration.
    """
    metadata = parse_ai_metadata(event.description, marker)
    raw = metadata.get('durationMin')
    if raw is not None and not isinstance(raw, bool):
        try:
            return max(Config.MIN_TASK_MINUTES, min(Config.MAX_TASK_MINUTES, int(raw)))
        except (TypeError, ValueError, OverflowError):
            logger.debug(f"Ignoring invalid durationMin {raw!r} on '{event.summary}'")

    observed = event.duration_minutes()
    if observed > 0:
        return observed
    return prefs.default_duration_min


def reshuffle(
    all_events: List[CalendarEvent],
    prefs: Preferences,
    now: datetime.datetime,
    horizon_days: int,
    update_event: EventUpdater,
    pinned_event_ids: Iterable[str] = (),
    marker: str = Config.AI_MARKER,
) -> ReshuffleResult:
    """
    Re-place auto-managed events one by one, earliest first.

    Args:
        all_events: Every calendar event in the horizon
        prefs: Working hours, buffer and placement preferences
        now: Current instant
        horizon_days: Days to search for each event
        update_event: Collaborator that moves an event; a False return or an
            exception marks that single event as failed
        pinned_event_ids: Auto-managed events that must stay put (mirrors of
            locked placements); they are treated as busy
        marker: Description marker identifying auto-managed events

    Returns:
        ReshuffleResult; events without a slot are left unchanged
    """
    now = ensure_aware(now)
    pinned = set(pinned_event_ids)

    movable: List[CalendarEvent] = []
    others: List[CalendarEvent] = []
    for event in all_events:
        if event.is_ai_managed(marker) and event.event_id not in pinned:
            movable.append(event)
        else:
            others.append(event)

    busy: List[BusyInterval] = busy_from_events(others, prefs.buffer_minutes)
    movable.sort(key=lambda e: ensure_aware(e.start))

    logger.info(f"Reshuffling {len(movable)} auto-managed events around {len(others)} fixed events")

    result = ReshuffleResult()
    for event in movable:
        duration = recover_duration(event, prefs, marker)
        start: Optional[datetime.datetime] = suggest_next_slot(busy, duration, prefs, now, horizon_days)

        if start is None:
            logger.warning(f"No slot for '{event.summary}' within {horizon_days} days; leaving it in place")
            result.skipped += 1
            continue

        end = start + datetime.timedelta(minutes=duration)
        try:
            ok = update_event(event.event_id, start=start, end=end)
        except Exception as e:
            logger.error(f"Updating '{event.summary}' failed: {e}", exc_info=True)
            ok = False

        if not ok:
            result.failed += 1
            continue

        busy.append(expand(BusyInterval(start, end), prefs.buffer_minutes))
        busy.sort(key=lambda i: (i.start, i.end))
        result.updated += 1
        result.moves.append(ReshuffleMove(
            event_id=event.event_id,
            summary=event.summary,
            old_start=event.start,
            new_start=start,
            new_end=end,
        ))

    logger.info(
        f"Reshuffle done: {result.updated} moved, {result.skipped} without slot, {result.failed} failed"
    )
    return result
