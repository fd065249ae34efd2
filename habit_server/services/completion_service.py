"""
Service de complétion - valider un statut et régénérer tout de suite si retard

Une instance régénérée ne doit jamais naître avec une échéance déjà passée :
adjust_due_time() décale l'heure, schedule_next_instance() décale le jour.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from habit_server.core.clock import SystemClock, system_clock
from habit_server.models.task import Task
from habit_server.models.user_task_status import UserTaskStatus
from habit_server.services.cycle_service import cycle_offset, status_deadline
from habit_server.services.idempotency_guard import lineage_of, instance_task_id, instance_exists
from habit_server.services.task_service import get_task

logger = logging.getLogger(__name__)

OVERDUE_OFFSET = timedelta(hours=2)
FALLBACK_DUE_TIME = time(23, 59)


class NoTimeLeftToday(Exception):
    """Le décalage de 2h dépasserait la fin de la journée"""


class StatusClosedError(Exception):
    """Le statut a déjà été jugé par le moteur de cycle"""


def adjust_due_time(original_time: Optional[time], target_date: date, now: datetime) -> Optional[time]:
    """
    Heure d'échéance pour une instance datée target_date, vue depuis now.

    - target_date dans le futur → heure d'origine inchangée
    - aujourd'hui, heure d'origine pas encore atteinte → heure d'origine
    - aujourd'hui, heure d'origine passée → now + 2h, ou NoTimeLeftToday
      si ça déborde sur le lendemain
    """
    if target_date > now.date():
        return original_time

    # sans heure d'origine, l'échéance est la fin de journée
    effective = original_time or FALLBACK_DUE_TIME
    if now.time() <= effective:
        return original_time

    pushed = now + OVERDUE_OFFSET
    if pushed.date() != now.date():
        raise NoTimeLeftToday(f"no time remains on {now.date()}")
    return pushed.time().replace(second=0, microsecond=0)


def schedule_next_instance(original_time: Optional[time], target_date: date,
                           now: datetime) -> Tuple[date, Optional[time]]:
    """(date, heure) de la prochaine instance, jamais dans le passé"""
    target_date = max(target_date, now.date())
    try:
        return target_date, adjust_due_time(original_time, target_date, now)
    except NoTimeLeftToday:
        return target_date + timedelta(days=1), original_time or FALLBACK_DUE_TIME


def regenerate_now(db: Session, task: Task, status: UserTaskStatus,
                   clock: SystemClock = system_clock) -> Optional[Task]:
    """
    Régénération immédiate : crée l'instance suivante (tâche + statut) pour l'utilisateur.

    L'id de l'instance dépend seulement de (lignée, date) ; si un statut
    existe déjà pour (utilisateur, lignée, date), rien n'est créé.
    """
    offset = cycle_offset(task.cycle_type)
    if offset is None:
        return None

    now = clock.now()
    lineage = lineage_of(task)
    next_date, next_time = schedule_next_instance(task.due_time, status.date + offset, now)

    if instance_exists(db, status.user_id, lineage, next_date):
        logger.info(f"Instance already exists, skipping: userId={status.user_id}, lineage={lineage}, date={next_date}")
        return None

    instance_id = instance_task_id(lineage, next_date)
    instance = get_task(db, instance_id)
    if instance is None:
        instance = Task(
            id=instance_id,
            team_id=task.team_id,
            name=task.name,
            description=task.description,
            estimated_minutes=task.estimated_minutes,
            cycle_type=task.cycle_type,
            due_date=next_date,
            due_time=task.due_time,
            lineage_id=lineage
        )
        db.add(instance)

    db.add(UserTaskStatus(
        user_id=status.user_id,
        task_id=instance_id,
        team_id=task.team_id,
        date=next_date,
        lineage_id=lineage,
        is_done=False,
        # seul ce premier statut garde l'heure décalée, la lignée reprend son heure
        due_time=next_time if next_time != task.due_time else None
    ))
    db.commit()
    logger.info(f"Regenerated instance {instance_id} for userId={status.user_id} due {next_date} {next_time}")
    return instance


def complete_task(db: Session, task: Task, status: UserTaskStatus,
                  clock: SystemClock = system_clock) -> Optional[Task]:
    """
    Valide un statut ouvert. Retourne l'instance régénérée si la complétion
    arrive après l'échéance d'une tâche récurrente, sinon None.
    """
    if not status.is_open:
        raise StatusClosedError(f"status {status.user_id}/{status.task_id}/{status.date} already evaluated")
    if status.is_done:
        return None

    now = clock.now()
    status.is_done = True
    status.completed_at = now
    db.commit()

    if now < status_deadline(task, status):
        return None
    return regenerate_now(db, task, status, clock)
