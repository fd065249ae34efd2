"""
Moteur de cycle - juge les statuts récurrents et rouvre la période suivante

Deux politiques, jamais mélangées dans une même passe :

- evaluate() : "jour précédent". Pour une date d'exécution J, juge les
  statuts datés J-1 ; quotidien → J, hebdomadaire → J-1 + 7 jours.
  Utilisée par le scheduler quotidien et le rattrapage au démarrage.
- evaluate_due() : "heure d'échéance". Juge chaque statut ouvert dès que sa
  propre échéance est passée et le régénère à sa date + période.
  Utilisée par le mode horaire.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from habit_server.core.clock import SystemClock, system_clock
from habit_server.models.task import Task
from habit_server.models.user_task_status import UserTaskStatus
from habit_server.services import sabotage_service
from habit_server.services.idempotency_guard import lineage_of, instance_exists
from habit_server.services.sabotage_service import Outcome
from habit_server.services.task_service import (
    list_team_tasks,
    find_open_statuses,
    find_open_statuses_until,
    get_user
)

logger = logging.getLogger(__name__)

CYCLE_OFFSETS = {
    "daily": relativedelta(days=1),
    "weekly": relativedelta(weeks=1),
}


def cycle_offset(cycle_type: Optional[str]) -> Optional[relativedelta]:
    """Période d'un type de cycle ; None = pas de récurrence (inconnu compris)"""
    if not cycle_type:
        return None
    return CYCLE_OFFSETS.get(cycle_type.strip().lower())


def deadline_for(day: date, due_time: Optional[time]) -> datetime:
    """Échéance d'un statut : jour + heure, ou minuit en fin de journée sans heure"""
    if due_time is None:
        return datetime.combine(day + timedelta(days=1), time.min)
    return datetime.combine(day, due_time)


def status_deadline(task: Task, status: UserTaskStatus) -> datetime:
    return deadline_for(status.date, status.due_time or task.due_time)


def judge(status: UserTaskStatus, deadline: datetime) -> Outcome:
    # fait sans horodatage (anciennes lignes) = fait à temps
    if status.is_done and (status.completed_at is None or status.completed_at < deadline):
        return Outcome.COMPLETED
    return Outcome.MISSED


def settle_status(db: Session, task: Task, status: UserTaskStatus, next_due: date,
                  clock: SystemClock = system_clock) -> bool:
    """
    Juge un statut ouvert, ouvre l'instance suivante, applique les points.

    Retourne True si un nouveau statut a été créé.
    """
    outcome = judge(status, status_deadline(task, status))
    lineage = lineage_of(task)

    created = False
    if instance_exists(db, status.user_id, lineage, next_due):
        logger.info(f"UserTaskStatus already exists, skipping: userId={status.user_id}, "
                    f"lineage={lineage}, date={next_due}")
    else:
        db.add(UserTaskStatus(
            user_id=status.user_id,
            task_id=task.id,
            team_id=task.team_id,
            date=next_due,
            lineage_id=lineage,
            is_done=False
        ))
        created = True

    status.evaluated_at = clock.now()

    user = get_user(db, status.user_id)
    if user is None:
        logger.error(f"User not found: userId={status.user_id}")
        db.commit()
    else:
        sabotage_service.report(db, user, status.team_id or task.team_id, task, outcome, status.date, clock)

    if created:
        logger.info(f"Created new UserTaskStatus: userId={status.user_id}, taskId={task.id}, date={next_due}")
    return created


def _settle_all(db: Session, task: Task, statuses, next_due_of, clock: SystemClock) -> int:
    regenerated = 0
    for status in statuses:
        user_id, status_date = status.user_id, status.date
        try:
            if settle_status(db, task, status, next_due_of(status), clock):
                regenerated += 1
        except Exception as e:
            # échec utilisateur : on annule ce statut seulement, il reste ouvert
            db.rollback()
            logger.error(f"Failed to settle status userId={user_id}, taskId={task.id}, date={status_date}: {e}")
    return regenerated


def _advance_task(db: Session, task: Task, reference_date: date, next_due: date) -> None:
    # la date d'échéance de la tâche n'avance jamais vers le passé
    if task.due_date is None or task.due_date <= reference_date:
        task.due_date = next_due
        db.commit()


def evaluate(db: Session, team_id: str, evaluation_date: date, clock: SystemClock = system_clock) -> int:
    """
    Politique "jour précédent" pour une équipe et une date d'exécution.

    Retourne le nombre de statuts régénérés. Rejouer la même date ne
    régénère rien et ne change pas les points : les statuts jugés ne sont
    plus ouverts.
    """
    reference_date = evaluation_date - timedelta(days=1)
    tasks = list_team_tasks(db, team_id)
    logger.debug(f"Team {team_id}: {len(tasks)} task(s), execution date {evaluation_date}, target {reference_date}")

    regenerated = 0
    for task in tasks:
        offset = cycle_offset(task.cycle_type)
        if offset is None:
            logger.debug(f"No recurrence for task {task.id} (cycleType={task.cycle_type}), skipping")
            continue

        next_due = reference_date + offset
        statuses = find_open_statuses(db, task.id, reference_date)
        if statuses:
            logger.info(f"Pending UserTaskStatus count for task {task.id} on {reference_date}: {len(statuses)}")
        regenerated += _settle_all(db, task, statuses, lambda status: next_due, clock)

        _advance_task(db, task, reference_date, next_due)

    return regenerated


def evaluate_due(db: Session, team_id: str, now: Optional[datetime] = None,
                 clock: SystemClock = system_clock) -> int:
    """
    Politique "heure d'échéance" : juge chaque statut ouvert dont l'échéance est passée.

    La date suivante est calculée par statut (date du statut + période),
    pas uniformément par tâche.
    """
    now = now or clock.now()
    regenerated = 0
    for task in list_team_tasks(db, team_id):
        offset = cycle_offset(task.cycle_type)
        if offset is None:
            continue

        due = [
            status for status in find_open_statuses_until(db, task.id, now.date())
            if now >= status_deadline(task, status)
        ]
        if not due:
            continue

        logger.info(f"Overdue UserTaskStatus count for task {task.id}: {len(due)}")
        regenerated += _settle_all(db, task, due, lambda status: status.date + offset, clock)

        latest = max(status.date for status in due)
        _advance_task(db, task, latest, latest + offset)

    return regenerated
