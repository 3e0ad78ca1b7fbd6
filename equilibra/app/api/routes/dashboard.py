from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services.dashboard_service import build_dashboard

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class MonthEndProjectionOut(BaseModel):
    projected_balance: float
    status: Literal["positive", "attention", "risk"]
    day_of_month: int
    days_in_month: int


class DailyOutflowOut(BaseModel):
    day: int
    outflow: float


class CategoryOutflowOut(BaseModel):
    category: str
    outflow: float


class MonthOutflowOut(BaseModel):
    month: str
    outflow: float


class MonthlyTrendOut(BaseModel):
    months: List[MonthOutflowOut]
    slope: Optional[float] = None
    intercept: Optional[float] = None
    projected_next_month: Optional[float] = None


class DashboardOut(BaseModel):
    owner_id: str
    mode: str
    generated_at: datetime
    balance: float
    month_inflow: float
    month_outflow: float
    spent_share_of_balance: int
    month_end_projection: MonthEndProjectionOut
    daily_outflow: List[DailyOutflowOut]
    category_outflow: List[CategoryOutflowOut]
    monthly_trend: MonthlyTrendOut


@router.get("", response_model=DashboardOut)
def get_dashboard(
    mode: Literal["work", "personal"] = Query("personal"),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return build_dashboard(db, owner.id, mode)
