"""
Task auto-scheduler command line.
Make sure you have run 'python scripts/setup.py' at least once.

Examples:
    python scripts/plan.py schedule
    python scripts/plan.py add "Write quarterly report, 90 minutes, urgent"
    python scripts/plan.py reshuffle
    python scripts/plan.py tasks
    python scripts/plan.py clear
"""

import argparse
import datetime
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autoscheduler.core.config_manager import Config
from autoscheduler.core.orchestrator import OrchestratorFactory, SchedulingOrchestrator
from autoscheduler.models import RunSummary, parse_iso_datetime
from autoscheduler.processors.schedule_processor import ScheduleProcessor
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Place pending tasks into free calendar time.")
    parser.add_argument("--user", default=Config.DEFAULT_USER_ID, help="User id (default: %(default)s)")
    parser.add_argument("--db", default=None, help="SQLite database path")

    sub = parser.add_subparsers(dest="command", required=True)

    schedule = sub.add_parser("schedule", help="Regenerate the schedule for the horizon")
    schedule.add_argument("--export", action="store_true", help="Also write output/last_schedule.json")

    add = sub.add_parser("add", help="Add a task from free text and place it")
    add.add_argument("text", help="Task description")
    add.add_argument("--no-suggest", action="store_true", help="Start at the next 5-minute mark instead")

    sub.add_parser("reshuffle", help="Move unlocked auto-placed events to their earliest slots")
    sub.add_parser("show", help="Print the stored time blocks with their ids")
    sub.add_parser("tasks", help="List pending and unscheduled tasks with their ids")

    move = sub.add_parser("move", help="Move a time block by hand (locks it)")
    move.add_argument("block_id", type=int)
    move.add_argument("start", help="ISO 8601 start")
    move.add_argument("end", help="ISO 8601 end")

    delete = sub.add_parser("delete", help="Delete a task and its time blocks")
    delete.add_argument("task_id")

    sub.add_parser("clear", help="Remove all time blocks; tasks return to pending")
    sub.add_parser("purge", help="Delete every record of the user")

    return parser


def run_command(args: argparse.Namespace, orchestrator: SchedulingOrchestrator) -> Optional[RunSummary]:
    """Dispatch one parsed command. Returns None for read-only commands."""
    now = datetime.datetime.now(datetime.timezone.utc)
    user = args.user

    if args.command == "schedule":
        return orchestrator.generate_schedule(user, now, export=args.export)
    if args.command == "add":
        overrides = {"suggest_time": False} if args.no_suggest else None
        return orchestrator.add_task(user, args.text, now, overrides)
    if args.command == "reshuffle":
        return orchestrator.reshuffle(user, now)
    if args.command == "move":
        start, end = parse_iso_datetime(args.start), parse_iso_datetime(args.end)
        if start is None or end is None:
            raise ValueError("start and end must be ISO 8601 date-times")
        return orchestrator.update_time_block(user, args.block_id, start, end)
    if args.command == "delete":
        return orchestrator.delete_task(user, args.task_id)
    if args.command == "clear":
        return orchestrator.clear_schedule(user)
    if args.command == "purge":
        return orchestrator.purge(user)
    if args.command == "show":
        prefs = orchestrator.store.get_preferences(user)
        processor = ScheduleProcessor(prefs.time_zone or Config.TARGET_TIMEZONE)
        print(processor.format_schedule(orchestrator.store.list_placements(user)))
        return None
    if args.command == "tasks":
        prefs = orchestrator.store.get_preferences(user)
        processor = ScheduleProcessor(prefs.time_zone or Config.TARGET_TIMEZONE)
        print(processor.format_tasks(orchestrator.store.list_pending_tasks(user)))
        return None

    raise ValueError(f"Unknown command: {args.command}")


def report(summary: RunSummary) -> None:
    logger.info(
        f"placed={summary.placed} unplaced={summary.unplaced} updated={summary.updated} "
        f"removed={summary.removed} failed={summary.failed}"
    )
    for reason in summary.reasons:
        logger.warning(f"  - {reason}")
    for rejected in summary.rejected:
        logger.warning(f"  rejected: {rejected}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main execution function.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)
    start_time = time.time()

    logger.info("=" * 60)
    logger.info(f"Task auto-scheduler: {args.command}")
    logger.info("=" * 60)

    try:
        orchestrator = OrchestratorFactory.create(args.db)
        summary = run_command(args, orchestrator)
        if summary is None:
            return 0

        report(summary)
        return 0 if summary.success else 1

    except ValueError as e:
        logger.error(str(e))
        return 1

    except ConnectionError as e:
        logger.error("Authentication failed", exc_info=True)
        logger.error(str(e))
        return 1

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1

    finally:
        elapsed = time.time() - start_time
        logger.info(f"Total execution time: {elapsed:.2f} seconds")


if __name__ == "__main__":
    sys.exit(main())
