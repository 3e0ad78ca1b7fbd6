from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from .schema import LedgerEntry


ANALYSIS_WINDOW_DAYS = 30
SHORT_WINDOW_DAYS = 7
TREND_MONTHS = 6


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key(value: datetime | date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def month_start(value: datetime) -> datetime:
    value = as_utc(value)
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trend_window_start(now: datetime, months: int = TREND_MONTHS) -> datetime:
    """First instant of the oldest month in the trailing `months` calendar months."""
    now = as_utc(now)
    year, month = shift_month(now.year, now.month, -(months - 1))
    return datetime(year, month, 1, tzinfo=timezone.utc)


def within_days(entries: Iterable[LedgerEntry], now: datetime, days: int) -> List[LedgerEntry]:
    now = as_utc(now)
    span = timedelta(days=days)
    return [e for e in entries if now - as_utc(e.occurred_at) <= span]


def _outflows(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    return [e for e in entries if e.direction == "outflow"]


def _sum_by_category(entries: Iterable[LedgerEntry]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for e in entries:
        totals[e.category] = totals.get(e.category, 0.0) + float(e.amount)
    return totals


@dataclass(frozen=True)
class WindowAggregates:
    """Sums over one analysis window. Category maps keep first-seen order."""

    total_inflow: float = 0.0
    total_outflow: float = 0.0
    outflow_by_category: Dict[str, float] = field(default_factory=dict)
    category_outflow_7d: Dict[str, float] = field(default_factory=dict)
    category_outflow_30d: Dict[str, float] = field(default_factory=dict)
    weekend_outflow: float = 0.0
    weekend_outflow_count: int = 0
    count: int = 0
    count_7d: int = 0

    @property
    def spend_ratio(self) -> Optional[float]:
        if self.total_inflow <= 0:
            return None
        return self.total_outflow / self.total_inflow


def aggregate_window(entries: Iterable[LedgerEntry], now: datetime) -> WindowAggregates:
    entries = list(entries)
    last_7d = within_days(entries, now, SHORT_WINDOW_DAYS)
    last_30d = within_days(entries, now, ANALYSIS_WINDOW_DAYS)
    outflows = _outflows(entries)
    weekend = [e for e in outflows if as_utc(e.occurred_at).weekday() >= 5]

    return WindowAggregates(
        total_inflow=sum(float(e.amount) for e in entries if e.direction == "inflow"),
        total_outflow=sum(float(e.amount) for e in outflows),
        outflow_by_category=_sum_by_category(outflows),
        category_outflow_7d=_sum_by_category(_outflows(last_7d)),
        category_outflow_30d=_sum_by_category(_outflows(last_30d)),
        weekend_outflow=sum(float(e.amount) for e in weekend),
        weekend_outflow_count=len(weekend),
        count=len(entries),
        count_7d=len(last_7d),
    )


@dataclass(frozen=True)
class MonthToDate:
    total_inflow: float
    total_outflow: float
    day_of_month: int
    days_in_month: int
    outflow_by_day: Dict[int, float]
    outflow_by_category: Dict[str, float]

    @property
    def remaining_days(self) -> int:
        return self.days_in_month - self.day_of_month


def aggregate_month_to_date(entries: Iterable[LedgerEntry], now: datetime) -> MonthToDate:
    now = as_utc(now)
    start = month_start(now)
    current = [e for e in entries if start <= as_utc(e.occurred_at) <= now]
    outflows = _outflows(current)

    by_day: Dict[int, float] = defaultdict(float)
    for e in outflows:
        by_day[as_utc(e.occurred_at).day] += float(e.amount)

    return MonthToDate(
        total_inflow=sum(float(e.amount) for e in current if e.direction == "inflow"),
        total_outflow=sum(float(e.amount) for e in outflows),
        day_of_month=now.day,
        days_in_month=calendar.monthrange(now.year, now.month)[1],
        outflow_by_day=dict(sorted(by_day.items())),
        outflow_by_category=_sum_by_category(outflows),
    )


@dataclass(frozen=True)
class MonthTotal:
    month: str  # YYYY-MM
    outflow: float


def monthly_outflows(
    entries: Iterable[LedgerEntry],
    now: datetime,
    months: int = TREND_MONTHS,
) -> List[MonthTotal]:
    """One outflow total per trailing calendar month, oldest first, current month last."""
    now = as_utc(now)
    keys = []
    for back in range(months - 1, -1, -1):
        year, month = shift_month(now.year, now.month, -back)
        keys.append(f"{year:04d}-{month:02d}")

    totals = {k: 0.0 for k in keys}
    for e in _outflows(entries):
        occurred = as_utc(e.occurred_at)
        if occurred > now:
            continue
        k = month_key(occurred)
        if k in totals:
            totals[k] += float(e.amount)
    return [MonthTotal(month=k, outflow=round(totals[k], 2)) for k in keys]
