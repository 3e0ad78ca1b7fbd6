from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from equilibra.app.insights.aggregate import (
    aggregate_month_to_date,
    as_utc,
    monthly_outflows,
    trend_window_start,
)
from equilibra.app.insights.trend import fit_line, project_month_end_balance, project_next_month
from equilibra.app.models import utcnow
from equilibra.app.services.account_service import primary_balance
from equilibra.app.services.transaction_service import fetch_ledger_entries, require_mode


def projection_status(projected: float, balance: float) -> str:
    if projected > balance * 0.5:
        return "positive"
    if projected > 0:
        return "attention"
    return "risk"


def build_dashboard(db: Session, owner_id: str, mode: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Month-to-date overview for one owner+mode.

    Output:
      balance, month inflow/outflow, end-of-month projection and status,
      daily outflow series, category split, six-month trend plus the projected
      next month (None when the fit is unavailable).
    """
    require_mode(mode)
    now = as_utc(now) if now else utcnow()
    balance = primary_balance(db, owner_id)
    entries = fetch_ledger_entries(db, owner_id, mode, trend_window_start(now), now)

    month = aggregate_month_to_date(entries, now)
    projected_balance = project_month_end_balance(balance, month)
    trend = monthly_outflows(entries, now)
    fit = fit_line([m.outflow for m in trend])
    projected_next = project_next_month(trend)

    daily: List[Dict[str, Any]] = [
        {"day": day, "outflow": round(total, 2)} for day, total in month.outflow_by_day.items()
    ]
    categories: List[Dict[str, Any]] = [
        {"category": category, "outflow": round(total, 2)}
        for category, total in sorted(month.outflow_by_category.items(), key=lambda kv: kv[1], reverse=True)
    ]

    return {
        "owner_id": owner_id,
        "mode": mode,
        "generated_at": now,
        "balance": round(balance, 2),
        "month_inflow": round(month.total_inflow, 2),
        "month_outflow": round(month.total_outflow, 2),
        "spent_share_of_balance": round(month.total_outflow / balance * 100) if balance > 0 else 0,
        "month_end_projection": {
            "projected_balance": round(projected_balance, 2),
            "status": projection_status(projected_balance, balance),
            "day_of_month": month.day_of_month,
            "days_in_month": month.days_in_month,
        },
        "daily_outflow": daily,
        "category_outflow": categories,
        "monthly_trend": {
            "months": [{"month": m.month, "outflow": m.outflow} for m in trend],
            "slope": None if fit is None else round(fit.slope, 4),
            "intercept": None if fit is None else round(fit.intercept, 4),
            "projected_next_month": None if projected_next is None else round(projected_next, 2),
        },
    }
