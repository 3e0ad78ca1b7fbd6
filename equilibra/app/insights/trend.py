from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .aggregate import MonthToDate, MonthTotal
from .formatting import format_brl, format_percent
from .schema import Finding, PRIORITY_IMPORTANT, PRIORITY_INFORMATIONAL


RISING_FACTOR = 1.2
FALLING_FACTOR = 0.8


@dataclass(frozen=True)
class LineFit:
    slope: float
    intercept: float

    def at(self, x: float) -> float:
        return self.slope * x + self.intercept


def fit_line(values: Sequence[float]) -> Optional[LineFit]:
    """
    Ordinary least squares over x = 0..n-1.

    Formula:
      m = (n·Σxy − Σx·Σy) / (n·Σx² − (Σx)²)
      b = (Σy − m·Σx) / n

    Returns None when the denominator is zero (fewer than two points).
    """
    n = len(values)
    if n == 0:
        return None
    sum_x = sum(range(n))
    sum_y = sum(float(v) for v in values)
    sum_xy = sum(i * float(v) for i, v in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return LineFit(slope=slope, intercept=intercept)


def project_next_month(monthly: Sequence[MonthTotal]) -> Optional[float]:
    fit = fit_line([m.outflow for m in monthly])
    if fit is None:
        return None
    return max(0.0, fit.at(len(monthly)))


def project_month_end_balance(balance: float, month: MonthToDate) -> float:
    """Current balance minus the month-to-date daily burn carried over the remaining days."""
    if month.day_of_month <= 0:
        return balance
    daily_average = month.total_outflow / month.day_of_month
    return balance - daily_average * month.remaining_days


def trend_findings(monthly: Sequence[MonthTotal]) -> List[Finding]:
    """
    Next-month projection against the last complete month.

    The newest point is the partial current month; the baseline is monthly[-2].
    """
    projected = project_next_month(monthly)
    if projected is None or projected <= 0 or len(monthly) < 2:
        return []

    baseline = monthly[-2].outflow
    if baseline > 0 and projected > baseline * RISING_FACTOR:
        growth = projected / baseline - 1
        return [
            Finding(
                key="trend_rising",
                title="📈 Tendência de Alta nos Gastos",
                message=(
                    f"A tendência dos últimos {len(monthly)} meses projeta {format_brl(projected)} "
                    f"em gastos no próximo mês, {format_percent(growth)} acima do último mês fechado."
                ),
                kind="alert",
                source="linear_trend",
                priority=PRIORITY_IMPORTANT,
            )
        ]

    if baseline > 0 and projected < baseline * FALLING_FACTOR:
        drop = 1 - projected / baseline
        return [
            Finding(
                key="trend_falling",
                title="📉 Gastos em Queda",
                message=(
                    f"Seus gastos estão diminuindo: a projeção para o próximo mês é de "
                    f"{format_brl(projected)}, {format_percent(drop)} abaixo do último mês fechado."
                ),
                kind="opportunity",
                source="linear_trend",
                priority=PRIORITY_INFORMATIONAL,
            )
        ]

    return [
        Finding(
            key="trend_projection",
            title="🔮 Previsão do Próximo Mês",
            message=f"Com base nos últimos {len(monthly)} meses, seus gastos devem ficar em torno de {format_brl(projected)}.",
            kind="info",
            source="linear_trend",
            priority=PRIORITY_INFORMATIONAL,
        )
    ]
