from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List

from habit_server.core.clock import SystemClock, get_clock
from habit_server.core.database import get_db
from habit_server.models.task import Task
from habit_server.models.team import Team
from habit_server.models.user_task_status import UserTaskStatus
from habit_server.schemas.task import (
    TaskCreate,
    TaskResponse,
    StatusResponse,
    CompleteRequest,
    CompleteResponse
)
from habit_server.services.completion_service import complete_task, StatusClosedError
from habit_server.services.task_service import get_task, find_status, find_task_statuses, list_team_tasks

router = APIRouter(prefix="/tasks")


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(task_data: TaskCreate, db: Session = Depends(get_db)):
    if not db.query(Team).filter(Team.id == task_data.team_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    if get_task(db, task_data.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task already exists")

    new_task = Task(
        id=task_data.id,
        team_id=task_data.team_id,
        name=task_data.name,
        description=task_data.description,
        estimated_minutes=task_data.estimated_minutes,
        cycle_type=task_data.cycle_type,
        due_date=task_data.due_date,
        due_time=task_data.due_time
    )
    db.add(new_task)

    # Un statut ouvert par personne assignée, à la date d'échéance
    for user_id in set(task_data.assignees):
        db.add(UserTaskStatus(
            user_id=user_id,
            task_id=new_task.id,
            team_id=new_task.team_id,
            date=new_task.due_date,
            lineage_id=new_task.id,
            is_done=False
        ))

    db.commit()
    db.refresh(new_task)
    return new_task


@router.get("", response_model=List[TaskResponse])
def list_tasks(team_id: str = Query(...), db: Session = Depends(get_db)):
    return list_team_tasks(db, team_id)


@router.get("/{task_id}/statuses", response_model=List[StatusResponse])
def list_statuses(task_id: str, db: Session = Depends(get_db)):
    if not get_task(db, task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return find_task_statuses(db, task_id)


@router.post("/{task_id}/complete", response_model=CompleteResponse)
def complete(
    task_id: str,
    request: CompleteRequest,
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock)
):
    """
    Valide la tâche d'un utilisateur pour un jour.

    Si c'est en retard sur une tâche récurrente, l'instance suivante est
    créée tout de suite avec une échéance encore atteignable.
    """
    task = get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    user_status = find_status(db, request.user_id, task_id, request.date)
    if not user_status:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status not found")

    try:
        regenerated = complete_task(db, task, user_status, clock)
    except StatusClosedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Status already evaluated")

    db.refresh(user_status)
    return CompleteResponse(
        status=StatusResponse.model_validate(user_status),
        regenerated=TaskResponse.model_validate(regenerated) if regenerated else None
    )
