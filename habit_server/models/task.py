"""Task model"""

from sqlalchemy import Column, String, Integer, Date, Time, DateTime, ForeignKey
from datetime import datetime
from habit_server.core.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, index=True)
    # team_id sert d'index inverse tâche -> équipe
    team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)

    cycle_type = Column(String, nullable=True)  # None, "daily", "weekly"
    due_date = Column(Date, nullable=True, index=True)
    due_time = Column(Time, nullable=True)

    # id de la tâche d'origine pour les instances régénérées
    lineage_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
