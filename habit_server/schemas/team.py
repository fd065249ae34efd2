from pydantic import BaseModel, ConfigDict
from datetime import datetime

class TeamCreate(BaseModel):
    id: str
    name: str

class TeamResponse(BaseModel):
    id: str
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UserCreate(BaseModel):
    id: str
    username: str

class UserResponse(BaseModel):
    id: str
    username: str
    sabotage_points: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class MessageResponse(BaseModel):
    id: int
    sender_id: str
    team_id: str
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
