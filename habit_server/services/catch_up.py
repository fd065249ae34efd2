"""
Rattrapage au démarrage - rejoue une passe par jour manqué pendant l'arrêt du serveur
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from habit_server.core.clock import SystemClock, system_clock
from habit_server.services.journal import ExecutionJournal
from habit_server.services.scheduler import TaskCycleScheduler, HOURLY

logger = logging.getLogger(__name__)


def missed_dates(last_run: Optional[date], today: date) -> List[date]:
    """
    Jours à rejouer, du plus ancien au plus récent.

    Strictement après last_run, jusqu'à aujourd'hui inclus. Sans journal,
    on considère que la dernière passe date d'hier.
    """
    if last_run is None:
        last_run = today - timedelta(days=1)
    days = []
    day = last_run + timedelta(days=1)
    while day <= today:
        days.append(day)
        day += timedelta(days=1)
    return days


def catch_up(scheduler: TaskCycleScheduler, journal: ExecutionJournal,
             clock: SystemClock = system_clock) -> List[date]:
    """
    Rejoue séquentiellement chaque jour manqué. Retourne les jours évalués.

    Chaque passe complète avance le journal. Une passe refusée arrête le
    rattrapage : un jour n'est jamais évalué avant les précédents.
    """
    if scheduler.mode == HOURLY:
        # la politique "heure d'échéance" couvre déjà tous les statuts en retard
        result = scheduler.run_due(clock.now())
        return [result.evaluation_date] if result is not None else []

    days = missed_dates(journal.read(), clock.today())
    if not days:
        logger.info("No missed executions to catch up")
        return []

    logger.info(f"Starting update of pending tasks during server downtime: {len(days)} day(s)")
    evaluated = []
    for day in days:
        logger.info(f"Updating tasks for {day}.")
        if scheduler.run_once(day) is None:
            logger.warning(f"Catch-up interrupted at {day}, remaining days left for the next startup")
            break
        evaluated.append(day)
    logger.info("Finished updating pending tasks.")
    return evaluated
