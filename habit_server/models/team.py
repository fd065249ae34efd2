from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from datetime import datetime
from habit_server.core.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Message(Base):
    """Message du fil d'équipe (écrit par le système, jamais relu par le moteur)"""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(String, nullable=False)
    team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)
    content = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
