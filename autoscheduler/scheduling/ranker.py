# File: autoscheduler/scheduling/ranker.py

import datetime
from typing import List

from autoscheduler.models.tasks import Task


def _rank_key(task: Task):
    # Deadline-bearing tasks first, earliest deadline first
    has_deadline = task.deadline is not None
    return (
        -task.priority.weight,
        not has_deadline,
        task.deadline if has_deadline else datetime.date.max,
    )


def rank_tasks(tasks: List[Task]) -> List[Task]:
    """
    Order tasks by priority (high first), then deadline (earliest first,
    tasks without one last). The sort is stable, so anything still tied
    keeps its input order.
    """
    return sorted(tasks, key=_rank_key)
