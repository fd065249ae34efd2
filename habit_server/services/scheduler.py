"""
Scheduler - passe automatique sur toutes les équipes

Une seule passe à la fois (RunGuard) : un tick qui arrive pendant une passe
est abandonné, pas mis en file. Mode "daily" : tous les jours à minuit,
politique "jour précédent". Mode "hourly" : toutes les heures, politique
"heure d'échéance".
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from habit_server.core import database
from habit_server.core.clock import SystemClock, system_clock
from habit_server.core.config import settings
from habit_server.services import cycle_service, sabotage_service
from habit_server.services.journal import ExecutionJournal
from habit_server.services.task_service import list_team_ids

logger = logging.getLogger(__name__)

DAILY = "daily"
HOURLY = "hourly"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunGuard:
    """Idle/Running avec compare-and-set sous verrou"""

    def __init__(self):
        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def try_acquire(self) -> bool:
        with self._lock:
            if self._state is SchedulerState.RUNNING:
                return False
            self._state = SchedulerState.RUNNING
            return True

    def release(self) -> None:
        with self._lock:
            self._state = SchedulerState.IDLE


@dataclass
class SweepResult:
    evaluation_date: date
    processed_teams: int = 0
    regenerated: int = 0
    failed_teams: List[str] = field(default_factory=list)
    journal_written: bool = False


class TaskCycleScheduler:

    def __init__(self, session_factory: Callable, journal: ExecutionJournal,
                 clock: SystemClock = system_clock, mode: str = DAILY,
                 grace_seconds: float = 60):
        if mode not in (DAILY, HOURLY):
            raise ValueError(f"Unknown scheduler mode: {mode}")
        self.session_factory = session_factory
        self.journal = journal
        self.clock = clock
        self.mode = mode
        self.grace_seconds = grace_seconds
        self.last_result: Optional[SweepResult] = None
        self._guard = RunGuard()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._guard.state

    @property
    def is_started(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ============ PASSES ============

    def _sweep(self, evaluation_date: date, evaluate_team: Callable, label: str) -> Optional[SweepResult]:
        if self._stop_event.is_set():
            logger.info(f"Scheduler stopping, dropping {label} for {evaluation_date}")
            return None
        if not self._guard.try_acquire():
            logger.info(f"Auto reset process already running. Skipping {label} for {evaluation_date}.")
            return None

        started = self.clock.now()
        result = SweepResult(evaluation_date=evaluation_date)
        try:
            db = self.session_factory()
            try:
                team_ids = list_team_ids(db)
            finally:
                db.close()
            logger.info(f"{label} started: {len(team_ids)} team(s) for {evaluation_date}")

            for team_id in team_ids:
                db = self.session_factory()
                try:
                    result.regenerated += evaluate_team(db, team_id)
                    result.processed_teams += 1
                except Exception as e:
                    db.rollback()
                    result.failed_teams.append(team_id)
                    logger.exception(f"Error during {label} for team {team_id}: {e}")
                finally:
                    db.close()

            logger.info(f"{label} complete: processed {result.processed_teams} team(s), "
                        f"regenerated {result.regenerated} task(s), {len(result.failed_teams)} failure(s) "
                        f"in {(self.clock.now() - started).total_seconds():.1f}s")
            result.journal_written = self._record(evaluation_date)
            self.last_result = result
            return result
        except Exception as e:
            logger.exception(f"Error during {label} for {evaluation_date}: {e}")
            return None
        finally:
            self._guard.release()

    def _record(self, evaluation_date: date) -> bool:
        # le journal ne dépasse jamais aujourd'hui et ne recule jamais
        if evaluation_date > self.clock.today():
            logger.info(f"Evaluation date {evaluation_date} is in the future, last execution date not updated")
            return False
        last = self.journal.read()
        if last is not None and evaluation_date < last:
            logger.info(f"Evaluation date {evaluation_date} is before last execution date {last}, not updated")
            return False
        return self.journal.write(evaluation_date)

    def run_once(self, evaluation_date: Optional[date] = None) -> Optional[SweepResult]:
        """Passe "jour précédent" pour une date (aujourd'hui par défaut). None si abandonnée."""
        evaluation_date = evaluation_date or self.clock.today()
        return self._sweep(
            evaluation_date,
            lambda db, team_id: cycle_service.evaluate(db, team_id, evaluation_date, self.clock),
            "Auto reset check"
        )

    def run_due(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        """Passe "heure d'échéance" à l'instant donné"""
        now = now or self.clock.now()
        return self._sweep(
            now.date(),
            lambda db, team_id: cycle_service.evaluate_due(db, team_id, now, self.clock),
            "Due-time check"
        )

    def report_pending_today(self) -> Optional[int]:
        """Debug : messages de honte pour les tâches non faites aujourd'hui, sans points"""
        if not self._guard.try_acquire():
            logger.info("Auto reset process already running, skipping debug report")
            return None
        try:
            today = self.clock.today()
            db = self.session_factory()
            try:
                sent = 0
                for team_id in list_team_ids(db):
                    try:
                        sent += sabotage_service.report_pending_for_day(db, team_id, today, self.clock)
                    except Exception as e:
                        db.rollback()
                        logger.exception(f"Error in debug sabotage report for team {team_id}: {e}")
                logger.info(f"Debug sabotage report complete: sent {sent} report(s)")
                return sent
            finally:
                db.close()
        finally:
            self._guard.release()

    def tick(self) -> Optional[SweepResult]:
        if self.mode == HOURLY:
            return self.run_due()
        return self.run_once()

    # ============ BOUCLE ============

    def seconds_until_next_tick(self, now: datetime) -> float:
        if self.mode == HOURLY:
            next_run = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
        else:
            next_run = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
        return (next_run - now).total_seconds()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            delay = self.seconds_until_next_tick(self.clock.now())
            logger.info(f"Next {self.mode} run in {int(delay // 3600)}h{int(delay % 3600 // 60)}m")
            if self._stop_event.wait(delay):
                break
            try:
                self.tick()
            except Exception as e:
                # le thread doit survivre pour les ticks suivants
                logger.exception(f"Scheduler tick failed: {e}")
        logger.info("Task auto reset scheduler loop exited")

    def start(self) -> None:
        if self.is_started:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="task-cycle-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Task auto reset scheduler started (mode={self.mode})")

    def schedule_test_run(self, delay_seconds: float) -> threading.Timer:
        """Debug : une passe unique dans delay_seconds secondes"""
        logger.info(f"Scheduling debug test run in {delay_seconds} seconds")
        timer = threading.Timer(delay_seconds, self.tick)
        timer.daemon = True
        timer.start()
        return timer

    def stop(self, grace_seconds: Optional[float] = None) -> bool:
        """
        Arrête d'accepter les ticks et laisse la passe en cours finir.

        Retourne False si la passe a été abandonnée après le délai de grâce ;
        les écritures déjà faites restent (rejouer est sans danger).
        """
        grace = self.grace_seconds if grace_seconds is None else grace_seconds
        deadline = time.monotonic() + grace
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=grace)
            self._thread = None
        # une passe lancée hors du thread (API, CLI) compte aussi
        while self.state is SchedulerState.RUNNING and time.monotonic() < deadline:
            time.sleep(0.05)
        finished = self.state is SchedulerState.IDLE
        if not finished:
            logger.warning(f"In-flight sweep still running after {grace}s, abandoning it")
        logger.info("Task auto reset scheduler stopped.")
        return finished


_scheduler: Optional[TaskCycleScheduler] = None


def build_scheduler(clock: SystemClock = system_clock) -> TaskCycleScheduler:
    return TaskCycleScheduler(
        session_factory=database.SessionLocal,
        journal=ExecutionJournal(settings.LAST_EXECUTION_FILE),
        clock=clock,
        mode=settings.SCHEDULER_MODE,
        grace_seconds=settings.SCHEDULER_STOP_GRACE_SECONDS
    )


def get_scheduler() -> TaskCycleScheduler:
    """Dépendance scheduler (instance unique du process)"""
    global _scheduler
    if _scheduler is None:
        _scheduler = build_scheduler()
    return _scheduler
