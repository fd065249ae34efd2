from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List

from habit_server.core.database import get_db
from habit_server.models.team import Team, Message
from habit_server.models.user import User
from habit_server.schemas.team import TeamCreate, TeamResponse, UserCreate, UserResponse, MessageResponse

router = APIRouter(tags=["teams"])


@router.post("/teams", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
def create_team(team_data: TeamCreate, db: Session = Depends(get_db)):
    if db.query(Team).filter(Team.id == team_data.id).first():
        raise HTTPException(status_code=400, detail="Team already exists")

    team = Team(id=team_data.id, name=team_data.name)
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user_data: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.id == user_data.id).first():
        raise HTTPException(status_code=400, detail="User already exists")
    if db.query(User).filter(User.username == user_data.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")

    user = User(id=user_data.id, username=user_data.username, sabotage_points=0)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/teams/{team_id}/messages", response_model=List[MessageResponse])
def list_messages(
    team_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """Fil de l'équipe, plus récents d'abord"""
    if not db.query(Team).filter(Team.id == team_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")

    return db.query(Message).filter(
        Message.team_id == team_id
    ).order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()
