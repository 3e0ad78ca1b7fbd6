from __future__ import annotations

from typing import List

from ..aggregate import ANALYSIS_WINDOW_DAYS, SHORT_WINDOW_DAYS
from ..formatting import format_brl, format_percent
from ..schema import Finding, PRIORITY_IMPORTANT, PRIORITY_INFORMATIONAL
from . import RuleContext, register


DAILY_TXN_LIMIT = 5
GROWTH_FACTOR = 1.5
GROWTH_MIN_WEEK_TOTAL = 50.0
WEEKEND_SHARE = 0.35
RESERVE_SHARE = 0.2


def _heuristic(key: str, title: str, message: str, kind: str, priority: int) -> Finding:
    return Finding(key=key, title=title, message=message, kind=kind, source="heuristic", priority=priority)


@register
def transaction_frequency_rule(ctx: RuleContext) -> List[Finding]:
    per_day = ctx.aggregates.count_7d / SHORT_WINDOW_DAYS
    if per_day <= DAILY_TXN_LIMIT:
        return []
    return [
        _heuristic(
            "transaction_frequency",
            "📈 Muitas Transações",
            f"Você está fazendo {per_day:.1f} transações por dia. Muitas pequenas despesas podem somar!",
            "info",
            PRIORITY_INFORMATIONAL,
        )
    ]


@register
def category_growth_rule(ctx: RuleContext) -> List[Finding]:
    agg = ctx.aggregates
    findings: List[Finding] = []
    for category, week_total in agg.category_outflow_7d.items():
        month_average = agg.category_outflow_30d.get(category, 0.0) / ANALYSIS_WINDOW_DAYS
        week_average = week_total / SHORT_WINDOW_DAYS
        if month_average <= 0:
            continue
        if week_average > month_average * GROWTH_FACTOR and week_total > GROWTH_MIN_WEEK_TOTAL:
            growth = week_average / month_average - 1
            findings.append(
                _heuristic(
                    f"category_growth:{category}",
                    f"📊 Aumento em {category}",
                    (
                        f'Seus gastos em "{category}" aumentaram {format_percent(growth)} na última semana '
                        f"({format_brl(week_total)} em {SHORT_WINDOW_DAYS} dias). Fique atento!"
                    ),
                    "alert",
                    PRIORITY_IMPORTANT,
                )
            )
    return findings


@register
def weekend_spending_rule(ctx: RuleContext) -> List[Finding]:
    agg = ctx.aggregates
    if agg.weekend_outflow_count == 0 or agg.total_outflow <= 0:
        return []
    share = agg.weekend_outflow / agg.total_outflow
    if share <= WEEKEND_SHARE:
        return []
    return [
        _heuristic(
            "weekend_spending",
            "🎉 Gastos de Fim de Semana",
            (
                f"{format_percent(share)} dos seus gastos ({format_brl(agg.weekend_outflow)}) ocorrem nos "
                "finais de semana. Planeje-se melhor para esses dias!"
            ),
            "info",
            PRIORITY_INFORMATIONAL,
        )
    ]


@register
def emergency_reserve_rule(ctx: RuleContext) -> List[Finding]:
    # the reserve target is measured against the window's income
    target = ctx.aggregates.total_inflow * RESERVE_SHARE
    if target <= 0 or not (0 < ctx.balance < target):
        return []
    return [
        _heuristic(
            "emergency_reserve",
            "💡 Construa sua Reserva",
            (
                f"Tente manter pelo menos {format_percent(RESERVE_SHARE)} da sua renda como reserva de "
                f"emergência. Meta: {format_brl(target)}"
            ),
            "opportunity",
            PRIORITY_INFORMATIONAL,
        )
    ]
