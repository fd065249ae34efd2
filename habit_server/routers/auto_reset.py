"""
Router des passes automatiques - exécution manuelle, rattrapage, debug
"""

from fastapi import APIRouter, Depends, Query
from datetime import date
from typing import Optional

from habit_server.schemas.auto_reset import (
    SweepResponse,
    CatchUpResponse,
    DebugReportResponse,
    SchedulerStatusResponse
)
from habit_server.services.catch_up import catch_up
from habit_server.services.scheduler import TaskCycleScheduler, SweepResult, get_scheduler

router = APIRouter(prefix="/auto-reset", tags=["auto-reset"])


def to_response(result: Optional[SweepResult]) -> SweepResponse:
    # None = passe refusée (une autre tourne déjà)
    if result is None:
        return SweepResponse(executed=False)
    return SweepResponse(
        executed=True,
        evaluation_date=result.evaluation_date,
        processed_teams=result.processed_teams,
        regenerated=result.regenerated,
        failed_teams=result.failed_teams
    )


@router.post("/run", response_model=SweepResponse)
def run(
    evaluation_date: Optional[date] = Query(None, alias="date"),
    scheduler: TaskCycleScheduler = Depends(get_scheduler)
):
    """Passe "jour précédent" maintenant, ou pour une date donnée"""
    return to_response(scheduler.run_once(evaluation_date))


@router.post("/run-due", response_model=SweepResponse)
def run_due(scheduler: TaskCycleScheduler = Depends(get_scheduler)):
    return to_response(scheduler.run_due())


@router.post("/catch-up", response_model=CatchUpResponse)
def run_catch_up(scheduler: TaskCycleScheduler = Depends(get_scheduler)):
    return CatchUpResponse(evaluated_dates=catch_up(scheduler, scheduler.journal, scheduler.clock))


@router.post("/debug/report-today", response_model=DebugReportResponse)
def debug_report_today(scheduler: TaskCycleScheduler = Depends(get_scheduler)):
    sent = scheduler.report_pending_today()
    return DebugReportResponse(executed=sent is not None, sent=sent or 0)


@router.post("/debug/schedule", status_code=202)
def debug_schedule(
    delay_seconds: int = Query(..., ge=1, le=3600),
    scheduler: TaskCycleScheduler = Depends(get_scheduler)
):
    scheduler.schedule_test_run(delay_seconds)
    return {"scheduled_in_seconds": delay_seconds}


@router.get("/status", response_model=SchedulerStatusResponse)
def scheduler_status(scheduler: TaskCycleScheduler = Depends(get_scheduler)):
    return SchedulerStatusResponse(
        state=scheduler.state.value,
        mode=scheduler.mode,
        started=scheduler.is_started,
        last_execution_date=scheduler.journal.read(),
        last_result=to_response(scheduler.last_result) if scheduler.last_result else None
    )
