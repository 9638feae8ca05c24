# File: autoscheduler/processors/task_processor.py
from typing import Any, Iterable, List, Tuple, Union

from autoscheduler.models import Task, ValidationError, task_from_dict
from autoscheduler.scheduling.ranker import rank_tasks
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


class TaskProcessor:
    """Validates raw task records and orders them for placement."""

    def validate_tasks(
        self, raw_tasks: Iterable[Union[Task, dict]]
    ) -> Tuple[List[Task], List[ValidationError]]:
        """
        Convert dicts to Task objects, keeping input order.

        Invalid records never reach the scheduler; each one is reported as a
        ValidationError carrying its index in the input.
        """
        valid: List[Task] = []
        errors: List[ValidationError] = []

        for index, raw in enumerate(raw_tasks):
            if isinstance(raw, Task):
                valid.append(raw)
                continue
            try:
                valid.append(task_from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                title = raw.get('title', 'Unknown') if isinstance(raw, dict) else 'Unknown'
                errors.append(ValidationError(field=_field_for(e), message=f"{title}: {e}", entry_index=index))
                logger.warning(f"Rejecting task {index} ({title!r}): {e}")

        return valid, errors

    def process_tasks(
        self, raw_tasks: Iterable[Union[Task, dict]]
    ) -> Tuple[List[Task], List[ValidationError]]:
        """Validate then rank. Returns (ranked tasks, rejected records)."""
        raw_tasks = list(raw_tasks)
        logger.info(f"Processing {len(raw_tasks)} raw tasks")

        valid, errors = self.validate_tasks(raw_tasks)
        ranked = rank_tasks(valid)

        logger.info(f"Returning {len(ranked)} ranked tasks ({len(errors)} rejected)")
        return ranked, errors


def _field_for(error: Any) -> str:
    text = str(error).lower()
    for name in ('duration', 'title', 'priority', 'date', 'status'):
        if name in text:
            return 'deadline' if name == 'date' else name
    return 'task'
