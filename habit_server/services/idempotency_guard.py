"""
Garde d'idempotence - une seule instance par (utilisateur, lignée, jour)

Le check-puis-insert n'est pas atomique côté base : il suppose un seul
évaluateur à la fois (voir RunGuard dans le scheduler).
"""

from datetime import date
from sqlalchemy.orm import Session
from habit_server.models.task import Task
from habit_server.services.task_service import find_status_by_lineage


def lineage_of(task: Task) -> str:
    """Lignée d'une tâche : son lineage_id, ou son propre id pour un original"""
    return task.lineage_id or task.id


def instance_task_id(lineage_id: str, day: date) -> str:
    """Id déterministe d'une instance régénérée : rejouer donne le même id"""
    return f"{lineage_id}_{day:%Y%m%d}"


def instance_exists(db: Session, user_id: str, lineage_id: str, day: date) -> bool:
    return find_status_by_lineage(db, user_id, lineage_id, day) is not None
