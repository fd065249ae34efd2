"""
Tests du scheduler : une seule passe à la fois, échecs isolés par équipe
"""

import threading

import pytest
from datetime import date, datetime

from habit_server.core.clock import FrozenClock
from habit_server.core.database import SessionLocal
from habit_server.models.user import User
from habit_server.services import cycle_service, scheduler as scheduler_module
from habit_server.services.scheduler import (
    TaskCycleScheduler,
    RunGuard,
    SchedulerState,
    HOURLY
)

JUNE_1 = date(2025, 6, 1)
JUNE_2 = date(2025, 6, 2)


# ============ TESTS RunGuard ============

def test_run_guard_compare_and_set():
    guard = RunGuard()
    assert guard.state is SchedulerState.IDLE
    assert guard.try_acquire() == True
    assert guard.try_acquire() == False
    assert guard.state is SchedulerState.RUNNING
    guard.release()
    assert guard.try_acquire() == True


# ============ TESTS PASSES ============

def test_run_once_sweeps_every_team(db, seed, scheduler, journal):
    seed.team("team-a")
    seed.team("team-b")
    seed.user(user_id="u1", username="alice")
    seed.user(user_id="u2", username="bob")
    seed.status("u1", seed.task(task_id="A", team_id="team-a", due_date=JUNE_1), JUNE_1)
    seed.status("u2", seed.task(task_id="B", team_id="team-b", due_date=JUNE_1), JUNE_1)

    result = scheduler.run_once(JUNE_2)

    assert result.processed_teams == 2
    assert result.regenerated == 2
    assert result.failed_teams == []
    assert result.journal_written == True
    assert journal.read() == JUNE_2
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.last_result is result


def test_run_once_defaults_to_today(seed, scheduler):
    seed.team()
    assert scheduler.run_once().evaluation_date == JUNE_2


def test_team_failure_does_not_stop_sweep(db, seed, scheduler, journal, monkeypatch):
    seed.team("team-a")
    seed.team("team-b")
    seed.user()
    seed.status("u1", seed.task(task_id="B", team_id="team-b", due_date=JUNE_1), JUNE_1)

    real_evaluate = cycle_service.evaluate

    def flaky_evaluate(db, team_id, evaluation_date, clock):
        if team_id == "team-a":
            raise RuntimeError("malformed task")
        return real_evaluate(db, team_id, evaluation_date, clock)

    monkeypatch.setattr(cycle_service, "evaluate", flaky_evaluate)

    result = scheduler.run_once(JUNE_2)

    assert result.failed_teams == ["team-a"]
    assert result.processed_teams == 1
    assert result.regenerated == 1
    assert journal.read() == JUNE_2
    db.expire_all()
    assert db.query(User).filter(User.id == "u1").one().sabotage_points == 1


def test_sweep_level_error_returns_to_idle(scheduler, journal, monkeypatch):
    def broken_directory(db):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(scheduler_module, "list_team_ids", broken_directory)

    assert scheduler.run_once(JUNE_2) is None
    assert scheduler.state is SchedulerState.IDLE
    assert journal.read() is None


def test_journal_failure_does_not_fail_sweep(seed, clock, tmp_path):
    from habit_server.services.journal import ExecutionJournal

    seed.team()
    blocker = tmp_path / "file.txt"
    blocker.write_text("")
    scheduler = TaskCycleScheduler(SessionLocal, ExecutionJournal(blocker / "journal.log"), clock)

    result = scheduler.run_once(JUNE_2)

    assert result.processed_teams == 1
    assert result.journal_written == False


def test_tick_while_running_is_dropped(seed, scheduler, monkeypatch):
    """Une passe en cours : le tick suivant est abandonné, pas mis en file"""
    seed.team()
    entered = threading.Event()
    release = threading.Event()
    calls = []

    def slow_evaluate(db, team_id, evaluation_date, clock):
        calls.append(evaluation_date)
        entered.set()
        release.wait(5)
        return 0

    monkeypatch.setattr(cycle_service, "evaluate", slow_evaluate)

    worker = threading.Thread(target=scheduler.run_once, args=(JUNE_1,))
    worker.start()
    assert entered.wait(5)

    assert scheduler.state is SchedulerState.RUNNING
    assert scheduler.run_once(JUNE_2) is None

    release.set()
    worker.join(5)
    assert calls == [JUNE_1]
    assert scheduler.state is SchedulerState.IDLE


def test_hourly_tick_runs_due_pass(db, seed, journal):
    seed.team()
    seed.user()
    task = seed.task(due_date=JUNE_1)
    seed.status("u1", task, JUNE_1)
    clock = FrozenClock(datetime(2025, 6, 2, 3, 0))
    scheduler = TaskCycleScheduler(SessionLocal, journal, clock, mode=HOURLY)

    result = scheduler.tick()

    assert result.regenerated == 1
    assert result.evaluation_date == JUNE_2


def test_report_pending_today(seed, scheduler):
    seed.team()
    seed.user()
    seed.status("u1", seed.task(due_date=JUNE_2), JUNE_2)

    assert scheduler.report_pending_today() == 1
    assert scheduler.state is SchedulerState.IDLE


def test_unknown_mode_is_rejected(journal):
    with pytest.raises(ValueError):
        TaskCycleScheduler(SessionLocal, journal, mode="monthly")


# ============ TESTS BOUCLE ============

def test_seconds_until_next_tick(journal):
    daily = TaskCycleScheduler(SessionLocal, journal)
    hourly = TaskCycleScheduler(SessionLocal, journal, mode=HOURLY)

    assert daily.seconds_until_next_tick(datetime(2025, 6, 1, 23, 0)) == 3600
    assert daily.seconds_until_next_tick(datetime(2025, 6, 1, 0, 0)) == 86400
    assert hourly.seconds_until_next_tick(datetime(2025, 6, 1, 10, 15)) == 2700


def test_start_and_stop(scheduler):
    scheduler.start()
    assert scheduler.is_started

    assert scheduler.stop(grace_seconds=2) == True
    assert not scheduler.is_started


def test_stopped_scheduler_drops_ticks(seed, scheduler):
    seed.team()
    scheduler.stop(grace_seconds=0)
    assert scheduler.run_once(JUNE_2) is None


def test_stop_abandons_sweep_after_grace(seed, scheduler, monkeypatch):
    """Passe bloquée plus longtemps que le délai de grâce : stop() rend la main"""
    seed.team()
    entered = threading.Event()
    release = threading.Event()

    def blocked_evaluate(db, team_id, evaluation_date, clock):
        entered.set()
        release.wait(5)
        return 0

    monkeypatch.setattr(cycle_service, "evaluate", blocked_evaluate)

    worker = threading.Thread(target=scheduler.run_once, args=(JUNE_2,))
    worker.start()
    assert entered.wait(5)

    assert scheduler.stop(grace_seconds=0.3) == False
    assert scheduler.state is SchedulerState.RUNNING

    release.set()
    worker.join(5)
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.run_once(JUNE_2) is None


def test_stop_waits_for_sweep_within_grace(seed, scheduler, monkeypatch):
    seed.team()
    entered = threading.Event()
    release = threading.Event()

    def slow_evaluate(db, team_id, evaluation_date, clock):
        entered.set()
        release.wait(5)
        return 0

    monkeypatch.setattr(cycle_service, "evaluate", slow_evaluate)

    worker = threading.Thread(target=scheduler.run_once, args=(JUNE_2,))
    worker.start()
    assert entered.wait(5)

    threading.Timer(0.1, release.set).start()
    assert scheduler.stop(grace_seconds=5) == True
    worker.join(5)
    assert scheduler.last_result.processed_teams == 1


# ============ TESTS JOURNAL ============

def test_future_date_does_not_move_journal(seed, scheduler, journal):
    seed.team()

    result = scheduler.run_once(date(2025, 6, 10))

    assert result.processed_teams == 1
    assert result.journal_written == False
    assert journal.read() is None


def test_past_date_does_not_move_journal_back(seed, scheduler, journal):
    seed.team()
    journal.write(JUNE_2)

    assert scheduler.run_once(JUNE_1).journal_written == False
    assert journal.read() == JUNE_2


# ============ TESTS PASSE DE TEST DIFFÉRÉE ============

def test_schedule_test_run(seed, scheduler, journal):
    seed.team()

    timer = scheduler.schedule_test_run(0.05)
    timer.join(5)

    assert scheduler.last_result.evaluation_date == JUNE_2
    assert scheduler.last_result.processed_teams == 1
    assert journal.read() == JUNE_2
    assert scheduler.state is SchedulerState.IDLE
