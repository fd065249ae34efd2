"""Pydantic schemas for task request/response validation."""

from pydantic import BaseModel, ConfigDict
from datetime import date, datetime, time
from typing import Optional, List

# Schemas tâches

class TaskCreate(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    estimated_minutes: Optional[int] = None
    cycle_type: Optional[str] = None
    due_date: date
    due_time: Optional[time] = None
    # utilisateurs à qui la tâche est assignée dès sa création
    assignees: List[str] = []


class TaskResponse(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str]
    estimated_minutes: Optional[int]
    cycle_type: Optional[str]
    due_date: Optional[date]
    due_time: Optional[time]
    lineage_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusResponse(BaseModel):
    user_id: str
    task_id: str
    date: date
    team_id: str
    lineage_id: str
    is_done: bool
    completed_at: Optional[datetime]
    due_time: Optional[time] = None
    evaluated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class CompleteRequest(BaseModel):
    user_id: str
    date: date


class CompleteResponse(BaseModel):
    status: StatusResponse
    regenerated: Optional[TaskResponse] = None
