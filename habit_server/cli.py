"""
habit-reset - passes de régénération en ligne de commande

Usage:
  habit-reset                      passe pour aujourd'hui
  habit-reset --date 2025-06-02    passe pour une date donnée
  habit-reset --catch-up           rejoue les jours manqués depuis le journal
  habit-reset --due                une passe "heure d'échéance"
  habit-reset --debug-report-today messages de honte pour aujourd'hui, sans points
"""

import argparse
import logging
import sys

from dateutil.parser import isoparse

from habit_server.core.config import settings
from habit_server.core.database import engine, Base
from habit_server.core.log_config import setup_logging
from habit_server.services.catch_up import catch_up
from habit_server.services.scheduler import build_scheduler

logger = logging.getLogger("habit_server.cli")


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="habit-reset", description="Recurring task regeneration")
    group = ap.add_mutually_exclusive_group()
    group.add_argument("--date", type=lambda value: isoparse(value).date(),
                       help="Evaluate a specific date (YYYY-MM-DD)")
    group.add_argument("--catch-up", action="store_true", help="Replay every day missed since the last run")
    group.add_argument("--due", action="store_true", help="Run one due-time pass now")
    group.add_argument("--debug-report-today", action="store_true",
                       help="Send debug sabotage reports for today's incomplete tasks")
    ap.add_argument("--log-level", default=settings.LOG_LEVEL)
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    Base.metadata.create_all(bind=engine)

    scheduler = build_scheduler()

    if args.catch_up:
        days = catch_up(scheduler, scheduler.journal, scheduler.clock)
        logger.info(f"Caught up {len(days)} day(s)")
        return 0

    if args.debug_report_today:
        sent = scheduler.report_pending_today()
        return 0 if sent is not None else 1

    result = scheduler.run_due() if args.due else scheduler.run_once(args.date)
    if result is None:
        logger.error("Run skipped or aborted")
        return 1
    logger.info(f"Run complete: {result.processed_teams} team(s), {result.regenerated} regenerated, "
                f"{len(result.failed_teams)} failed")
    return 1 if result.failed_teams else 0


if __name__ == "__main__":
    sys.exit(main())
