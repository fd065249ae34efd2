from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint
from datetime import datetime
from habit_server.core.database import Base

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("sabotage_points BETWEEN 0 AND 9", name="ck_users_sabotage_points"),
    )

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Points de sabotage : +1 par échéance manquée, -1 par tâche faite à temps
    sabotage_points = Column(Integer, nullable=False, default=0)
