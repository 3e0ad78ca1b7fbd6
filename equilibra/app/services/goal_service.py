from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from equilibra.app.insights.aggregate import month_key, shift_month
from equilibra.app.models import Goal, Transaction, utcnow
from equilibra.app.services.account_service import get_or_create_profile
from equilibra.app.services.transaction_service import require_mode


WARNING_PERCENT = 80.0
EXCEEDED_PERCENT = 100.0

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class GoalProgress:
    goal: Goal
    spent: float
    percent: float
    remaining: float
    status: str  # on_track | warning | exceeded


def _require_period(period_month: str) -> str:
    if not _PERIOD_RE.match(period_month or ""):
        raise HTTPException(status_code=422, detail="period_month must be formatted as YYYY-MM")
    return period_month


def _period_bounds(period_month: str) -> tuple[datetime, datetime]:
    year, month = (int(part) for part in period_month.split("-"))
    next_year, next_month = shift_month(year, month, 1)
    return (
        datetime(year, month, 1, tzinfo=timezone.utc),
        datetime(next_year, next_month, 1, tzinfo=timezone.utc),
    )


def goal_status(percent: float) -> str:
    if percent >= EXCEEDED_PERCENT:
        return "exceeded"
    if percent >= WARNING_PERCENT:
        return "warning"
    return "on_track"


def create_goal(
    db: Session,
    owner_id: str,
    *,
    category: str,
    mode: str,
    limit_amount: float,
    period_month: Optional[str] = None,
) -> Goal:
    require_mode(mode)
    category = (category or "").strip()
    if not category:
        raise HTTPException(status_code=400, detail="category is required")
    if limit_amount is None or limit_amount <= 0:
        raise HTTPException(status_code=400, detail="limit_amount must be positive")
    period = _require_period(period_month or month_key(utcnow()))

    get_or_create_profile(db, owner_id)
    goal = Goal(
        owner_id=owner_id,
        category=category,
        mode=mode,
        limit_amount=Decimal(str(limit_amount)),
        period_month=period,
    )
    db.add(goal)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail="a goal for this category, mode and month already exists",
        ) from exc
    db.refresh(goal)
    return goal


def delete_goal(db: Session, owner_id: str, goal_id: str) -> None:
    goal = db.get(Goal, goal_id)
    if not goal or goal.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="goal not found")
    db.delete(goal)
    db.commit()


def list_goals(db: Session, owner_id: str, *, mode: Optional[str] = None, period_month: Optional[str] = None) -> List[Goal]:
    stmt = select(Goal).where(Goal.owner_id == owner_id)
    if mode:
        stmt = stmt.where(Goal.mode == require_mode(mode))
    if period_month:
        stmt = stmt.where(Goal.period_month == _require_period(period_month))
    return db.execute(stmt.order_by(Goal.period_month.desc(), Goal.category.asc())).scalars().all()


def _category_spend(db: Session, owner_id: str, mode: str, period_month: str) -> Dict[str, float]:
    start, end = _period_bounds(period_month)
    rows = db.execute(
        select(Transaction.category, Transaction.amount).where(
            Transaction.owner_id == owner_id,
            Transaction.mode == mode,
            Transaction.direction == "outflow",
            Transaction.occurred_at >= start,
            Transaction.occurred_at < end,
        )
    ).all()
    totals: Dict[str, float] = {}
    for category, amount in rows:
        totals[category] = totals.get(category, 0.0) + float(amount)
    return totals


def goal_progress(db: Session, owner_id: str, *, mode: str, period_month: Optional[str] = None) -> List[GoalProgress]:
    require_mode(mode)
    period = _require_period(period_month or month_key(utcnow()))
    spend = _category_spend(db, owner_id, mode, period)

    progress: List[GoalProgress] = []
    for goal in list_goals(db, owner_id, mode=mode, period_month=period):
        limit = float(goal.limit_amount)
        spent = round(spend.get(goal.category, 0.0), 2)
        percent = round(spent / limit * 100, 1) if limit > 0 else 0.0
        progress.append(
            GoalProgress(
                goal=goal,
                spent=spent,
                percent=percent,
                remaining=round(max(0.0, limit - spent), 2),
                status=goal_status(percent),
            )
        )
    return progress
