"""Schemas des passes automatiques"""

from pydantic import BaseModel
from datetime import date
from typing import Optional, List


class SweepResponse(BaseModel):
    executed: bool
    evaluation_date: Optional[date] = None
    processed_teams: int = 0
    regenerated: int = 0
    failed_teams: List[str] = []


class CatchUpResponse(BaseModel):
    evaluated_dates: List[date]


class DebugReportResponse(BaseModel):
    executed: bool
    sent: int = 0


class SchedulerStatusResponse(BaseModel):
    state: str
    mode: str
    started: bool
    last_execution_date: Optional[date]
    last_result: Optional[SweepResponse] = None
