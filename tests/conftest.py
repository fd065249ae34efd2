import os
import sys
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

# Config de test AVANT d'importer l'app : SQLite, pas de scheduler au démarrage
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from datetime import datetime

from habit_server.core.database import Base, engine, SessionLocal, get_db
from habit_server.core.clock import FrozenClock, get_clock
from habit_server.main import app
from habit_server.models.task import Task
from habit_server.models.team import Team
from habit_server.models.user import User
from habit_server.models.user_task_status import UserTaskStatus
from habit_server.services.journal import ExecutionJournal
from habit_server.services.scheduler import TaskCycleScheduler, get_scheduler


@pytest.fixture(autouse=True)
def setup_teardown():
    """Crée et nettoie la DB avant/après chaque test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Session DB pour les tests"""
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def clock():
    """Le 2 juin 2025 à 9h"""
    return FrozenClock(datetime(2025, 6, 2, 9, 0))


@pytest.fixture
def journal(tmp_path):
    return ExecutionJournal(tmp_path / "last_execution.log")


@pytest.fixture
def scheduler(clock, journal):
    return TaskCycleScheduler(session_factory=SessionLocal, journal=journal, clock=clock)


@pytest.fixture
def client(scheduler, clock):
    """Client de test FastAPI"""
    from fastapi.testclient import TestClient

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()


class Seed:
    """Helpers pour remplir la DB"""

    def __init__(self, db):
        self.db = db

    def team(self, team_id="team-1", name="Les Matinaux"):
        team = Team(id=team_id, name=name)
        self.db.add(team)
        self.db.commit()
        return team

    def user(self, user_id="u1", username="alice", points=0):
        user = User(id=user_id, username=username, sabotage_points=points)
        self.db.add(user)
        self.db.commit()
        return user

    def task(self, task_id="T", team_id="team-1", cycle_type="daily", due_date=None,
             due_time=None, lineage_id=None, name=None):
        task = Task(
            id=task_id,
            team_id=team_id,
            name=name or task_id,
            cycle_type=cycle_type,
            due_date=due_date,
            due_time=due_time,
            lineage_id=lineage_id
        )
        self.db.add(task)
        self.db.commit()
        return task

    def status(self, user_id, task, day, is_done=False, completed_at=None):
        status = UserTaskStatus(
            user_id=user_id,
            task_id=task.id,
            team_id=task.team_id,
            date=day,
            lineage_id=task.lineage_id or task.id,
            is_done=is_done,
            completed_at=completed_at
        )
        self.db.add(status)
        self.db.commit()
        return status


@pytest.fixture
def seed(db):
    return Seed(db)
