from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import goal_service

router = APIRouter(prefix="/api/goals", tags=["goals"])


class GoalIn(BaseModel):
    category: str = Field(min_length=1, max_length=120)
    mode: Literal["work", "personal"]
    limit_amount: float = Field(gt=0)
    period_month: Optional[str] = None


class GoalOut(BaseModel):
    id: str
    category: str
    mode: str
    limit_amount: float
    period_month: str
    created_at: datetime

    class Config:
        from_attributes = True


class GoalProgressOut(BaseModel):
    goal: GoalOut
    spent: float
    percent: float
    remaining: float
    status: Literal["on_track", "warning", "exceeded"]


@router.post("", response_model=GoalOut, status_code=201)
def create_goal(
    req: GoalIn,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return goal_service.create_goal(
        db,
        owner.id,
        category=req.category,
        mode=req.mode,
        limit_amount=req.limit_amount,
        period_month=req.period_month,
    )


@router.get("", response_model=List[GoalOut])
def list_goals(
    mode: Optional[Literal["work", "personal"]] = Query(default=None),
    period_month: Optional[str] = Query(default=None),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return goal_service.list_goals(db, owner.id, mode=mode, period_month=period_month)


@router.get("/progress", response_model=List[GoalProgressOut])
def goal_progress(
    mode: Literal["work", "personal"] = Query("personal"),
    period_month: Optional[str] = Query(default=None),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return [
        GoalProgressOut(
            goal=GoalOut.model_validate(p.goal),
            spent=p.spent,
            percent=p.percent,
            remaining=p.remaining,
            status=p.status,
        )
        for p in goal_service.goal_progress(db, owner.id, mode=mode, period_month=period_month)
    ]


@router.delete("/{goal_id}", status_code=204)
def delete_goal(
    goal_id: str,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    goal_service.delete_goal(db, owner.id, goal_id)
    return Response(status_code=204)
