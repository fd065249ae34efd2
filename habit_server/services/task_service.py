"""Task service - accès aux tâches, statuts, utilisateurs et équipes"""

from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from habit_server.models.task import Task
from habit_server.models.team import Team
from habit_server.models.user import User
from habit_server.models.user_task_status import UserTaskStatus


def list_team_ids(db: Session) -> List[str]:
    return [team_id for (team_id,) in db.query(Team.id).order_by(Team.id).all()]


def list_team_tasks(db: Session, team_id: str) -> List[Task]:
    return db.query(Task).filter(Task.team_id == team_id).order_by(Task.id).all()


def get_task(db: Session, task_id: str) -> Optional[Task]:
    return db.query(Task).filter(Task.id == task_id).first()


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def find_statuses(db: Session, task_id: str, day: date) -> List[UserTaskStatus]:
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.task_id == task_id,
        UserTaskStatus.date == day
    ).order_by(UserTaskStatus.user_id).all()


def find_open_statuses(db: Session, task_id: str, day: date) -> List[UserTaskStatus]:
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.task_id == task_id,
        UserTaskStatus.date == day,
        UserTaskStatus.evaluated_at.is_(None)
    ).order_by(UserTaskStatus.user_id).all()


def find_open_statuses_until(db: Session, task_id: str, until: date) -> List[UserTaskStatus]:
    # plus anciens d'abord : un utilisateur rattrape ses jours dans l'ordre
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.task_id == task_id,
        UserTaskStatus.date <= until,
        UserTaskStatus.evaluated_at.is_(None)
    ).order_by(UserTaskStatus.date, UserTaskStatus.user_id).all()


def find_task_statuses(db: Session, task_id: str) -> List[UserTaskStatus]:
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.task_id == task_id
    ).order_by(UserTaskStatus.date, UserTaskStatus.user_id).all()


def find_status(db: Session, user_id: str, task_id: str, day: date) -> Optional[UserTaskStatus]:
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.user_id == user_id,
        UserTaskStatus.task_id == task_id,
        UserTaskStatus.date == day
    ).first()


def find_status_by_lineage(db: Session, user_id: str, lineage_id: str, day: date) -> Optional[UserTaskStatus]:
    return db.query(UserTaskStatus).filter(
        UserTaskStatus.user_id == user_id,
        UserTaskStatus.lineage_id == lineage_id,
        UserTaskStatus.date == day
    ).first()
