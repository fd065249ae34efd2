"""
Service de sabotage - points de sabotage bornés, messages de honte dans le fil d'équipe
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from habit_server.core.clock import SystemClock, system_clock
from habit_server.models.task import Task
from habit_server.models.team import Message
from habit_server.models.user import User
from habit_server.services.task_service import list_team_tasks, find_statuses, get_user

logger = logging.getLogger(__name__)

# ============ CONSTANTES ============

MIN_SABOTAGE_POINTS = 0
MAX_SABOTAGE_POINTS = 9


@dataclass(frozen=True)
class SystemActor:
    id: str
    name: str


# Expéditeur des messages automatiques
SYSTEM_ACTOR = SystemActor(id="system", name="System")


class Outcome(str, Enum):
    COMPLETED = "completed"  # fait avant l'échéance
    MISSED = "missed"        # pas fait, ou fait en retard


# ============ FONCTIONS ============

def apply_outcome(points: int, outcome: Outcome) -> int:
    """
    Nouveau total de points selon le résultat.

    completed → -1, jamais en dessous de 0
    missed → +1, jamais au-dessus de 9
    """
    current = max(MIN_SABOTAGE_POINTS, min(MAX_SABOTAGE_POINTS, points or 0))
    if outcome is Outcome.COMPLETED:
        return max(MIN_SABOTAGE_POINTS, current - 1)
    return min(MAX_SABOTAGE_POINTS, current + 1)


def sabotage_message(username: str, task_name: str, day: date) -> str:
    return f"{username} a saboté la tâche « {task_name} » du {day.isoformat()}."


def post_system_message(db: Session, team_id: str, content: str, now: datetime) -> bool:
    """
    Ajoute un message système au fil de l'équipe.

    Best effort : un échec est loggé puis ignoré, les points déjà
    enregistrés restent en place.
    """
    try:
        db.add(Message(sender_id=SYSTEM_ACTOR.id, team_id=team_id, content=content, created_at=now))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to send system message to team {team_id}: {e}")
        return False


def report(db: Session, user: User, team_id: str, task: Task, outcome: Outcome,
           day: date, clock: SystemClock = system_clock) -> int:
    """
    Applique le résultat d'un statut jugé et retourne les nouveaux points.

    Le commit des points valide aussi ce que l'appelant a déjà mis en
    session (statut régénéré, statut marqué évalué). Une erreur ici remonte
    à l'appelant, qui l'isole au niveau de l'utilisateur.
    """
    before = user.sabotage_points or 0
    after = apply_outcome(before, outcome)
    user.sabotage_points = after
    db.commit()
    logger.info(f"Updated sabotage points for {user.username}: {before} -> {after} ({outcome.value})")

    if outcome is Outcome.MISSED:
        post_system_message(db, team_id, sabotage_message(user.username, task.name, day), clock.now())

    return after


def report_pending_for_day(db: Session, team_id: str, day: date, clock: SystemClock = system_clock) -> int:
    """
    Debug : message de honte pour chaque statut non fait du jour donné.

    Ne touche ni aux points ni aux statuts. Retourne le nombre de messages envoyés.
    """
    sent = 0
    for task in list_team_tasks(db, team_id):
        if task.cycle_type is None:
            continue
        for status in find_statuses(db, task.id, day):
            if status.is_done:
                continue
            user = get_user(db, status.user_id)
            if user is None:
                logger.error(f"User not found: userId={status.user_id}")
                continue
            content = "[debug] " + sabotage_message(user.username, task.name, day)
            if post_system_message(db, status.team_id, content, clock.now()):
                sent += 1
    return sent
