"""UserTaskStatus model - une ligne par (utilisateur, tâche, jour)"""

from sqlalchemy import Column, String, Date, DateTime, Time, Boolean, ForeignKey
from habit_server.core.database import Base


class UserTaskStatus(Base):
    __tablename__ = "user_task_statuses"

    user_id = Column(String, primary_key=True, index=True)
    task_id = Column(String, ForeignKey("tasks.id"), primary_key=True, index=True)
    date = Column(Date, primary_key=True, index=True)

    team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)
    lineage_id = Column(String, nullable=False, index=True)

    is_done = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    # heure d'échéance propre à ce statut (décalée après un retard), sinon celle de la tâche
    due_time = Column(Time, nullable=True)

    # NULL tant que le statut n'a pas été jugé par le moteur de cycle
    evaluated_at = Column(DateTime, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.evaluated_at is None
