from .intervals import (
    BusyInterval,
    TimeWindow,
    overlaps,
    subtract,
    expand,
    merge,
    busy_from_events,
    busy_from_placements,
    round_up_to_step,
)
from .windows import build_windows, MIN_WINDOW_MINUTES
from .ranker import rank_tasks
from .placer import place_tasks
from .suggester import suggest_next_slot, suggest_best_slot
from .reshuffle import reshuffle, ReshuffleResult

__all__ = [
    "BusyInterval",
    "TimeWindow",
    "overlaps",
    "subtract",
    "expand",
    "merge",
    "busy_from_events",
    "busy_from_placements",
    "round_up_to_step",
    "build_windows",
    "MIN_WINDOW_MINUTES",
    "rank_tasks",
    "place_tasks",
    "suggest_next_slot",
    "suggest_best_slot",
    "reshuffle",
    "ReshuffleResult",
]
