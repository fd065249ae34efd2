import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from habit_server.core.config import settings
from habit_server.core.database import engine, Base
from habit_server.core.log_config import setup_logging
from habit_server.routers import health, teams, tasks, auto_reset
from habit_server.services.catch_up import catch_up
from habit_server.services.scheduler import get_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Démarrage : tables, rattrapage des jours manqués, puis scheduler
    setup_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    scheduler = get_scheduler()
    if settings.SCHEDULER_ENABLED:
        if settings.CATCH_UP_ON_STARTUP:
            catch_up(scheduler, scheduler.journal, scheduler.clock)
        scheduler.start()
    else:
        logger.info("Task auto reset scheduler disabled")

    yield

    # Arrêt : la passe en cours a un délai de grâce
    if scheduler.is_started:
        scheduler.stop()


app = FastAPI(
    title="Habit Server API",
    version="0.1.0",
    lifespan=lifespan
)

# Routes
app.include_router(health.router, prefix="/health")
app.include_router(teams.router)
app.include_router(tasks.router)
app.include_router(auto_reset.router)
