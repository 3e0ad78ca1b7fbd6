from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import insight_service

router = APIRouter(prefix="/api/insights", tags=["insights"])


class InsightOut(BaseModel):
    id: str
    title: str
    message: str
    kind: Literal["alert", "opportunity", "info"]
    source: Literal["linear_trend", "rule_evaluator", "heuristic"]
    priority: int
    generated_at: datetime
    read: bool

    class Config:
        from_attributes = True


class InsightBatchOut(BaseModel):
    owner_id: str
    mode: str
    strategy: str
    count: int
    insights: List[InsightOut]


@router.post("/generate", response_model=InsightBatchOut)
def generate_insights(
    mode: Literal["work", "personal"] = Query("personal"),
    strategy: Optional[Literal["rules", "ai"]] = Query(default=None),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    generator = insight_service.resolve_generator(strategy)
    rows = insight_service.generate_insights(db, owner.id, mode, generator=generator)
    return InsightBatchOut(
        owner_id=owner.id,
        mode=mode,
        strategy=generator.name,
        count=len(rows),
        insights=[InsightOut.model_validate(r) for r in rows],
    )


@router.get("", response_model=List[InsightOut])
def list_insights(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return insight_service.list_insights(db, owner.id, unread_only=unread_only, limit=limit)


@router.post("/{insight_id}/read", response_model=InsightOut)
def mark_insight_read(
    insight_id: str,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return insight_service.mark_read(db, owner.id, insight_id)
