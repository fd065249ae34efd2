from fastapi import APIRouter, Depends

from habit_server.services.scheduler import TaskCycleScheduler, get_scheduler

router = APIRouter()

@router.get("/z")
def healthz(scheduler: TaskCycleScheduler = Depends(get_scheduler)):
    # Check si l'API est up + état du scheduler
    last = scheduler.journal.read()
    return {
        "status": "ok",
        "scheduler": scheduler.state.value,
        "last_execution_date": last.isoformat() if last else None
    }
