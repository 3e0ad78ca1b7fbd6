from __future__ import annotations

import unicodedata
from typing import List, Sequence

from ..formatting import format_brl, format_percent
from ..schema import Finding, PRIORITY_IMPORTANT, PRIORITY_INFORMATIONAL, PRIORITY_URGENT
from . import RuleContext, register


RATIO_CRITICAL = 0.9
RATIO_HIGH = 0.75
RATIO_HEALTHY = 0.5
CONCENTRATION_SHARE = 0.40
FOOD_SHARE_OF_INCOME = 0.30
TRANSPORT_SHARE_OF_INCOME = 0.25
THIN_MARGIN_SHARE = 0.1

FOOD_KEYWORDS = ("aliment", "food")
TRANSPORT_KEYWORDS = ("transport",)


def normalize_category(category: str) -> str:
    decomposed = unicodedata.normalize("NFKD", category or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold().strip()


def category_matches(category: str, keywords: Sequence[str]) -> bool:
    normalized = normalize_category(category)
    return any(k in normalized for k in keywords)


def _rule(key: str, title: str, message: str, kind: str, priority: int) -> Finding:
    return Finding(key=key, title=title, message=message, kind=kind, source="rule_evaluator", priority=priority)


@register
def spend_ratio_rule(ctx: RuleContext) -> List[Finding]:
    ratio = ctx.aggregates.spend_ratio
    if ratio is None:
        return []

    if ratio > RATIO_CRITICAL:
        return [
            _rule(
                "spend_ratio_critical",
                "⚠️ Gastos Críticos",
                f"Suas despesas estão em {format_percent(ratio)} das suas receitas este mês. Risco alto de déficit!",
                "alert",
                PRIORITY_URGENT,
            )
        ]
    if ratio > RATIO_HIGH:
        return [
            _rule(
                "spend_ratio_high",
                "⚡ Atenção aos Gastos",
                f"Você já gastou {format_percent(ratio)} das suas receitas. Considere reduzir despesas não essenciais.",
                "alert",
                PRIORITY_IMPORTANT,
            )
        ]
    if ratio < RATIO_HEALTHY:
        return [
            _rule(
                "spend_ratio_healthy",
                "💰 Gestão Eficiente",
                f"Parabéns! Você gastou apenas {format_percent(ratio)} das suas receitas. Continue assim!",
                "opportunity",
                PRIORITY_INFORMATIONAL,
            )
        ]
    return []


@register
def category_rules(ctx: RuleContext) -> List[Finding]:
    agg = ctx.aggregates
    findings: List[Finding] = []

    for category, total in agg.outflow_by_category.items():
        if agg.total_outflow > 0:
            share = total / agg.total_outflow
            if share > CONCENTRATION_SHARE:
                findings.append(
                    _rule(
                        f"category_concentration:{category}",
                        f"📊 Concentração em {category}",
                        (
                            f'A categoria "{category}" representa {format_percent(share)} dos seus gastos '
                            f"({format_brl(total)}). Considere diversificar suas despesas."
                        ),
                        "info",
                        PRIORITY_IMPORTANT,
                    )
                )

        # thresholds are relative to income; without income there is nothing to compare
        if agg.total_inflow <= 0:
            continue

        if category_matches(category, FOOD_KEYWORDS) and total > agg.total_inflow * FOOD_SHARE_OF_INCOME:
            findings.append(
                _rule(
                    f"food_overrun:{category}",
                    "🍔 Gastos Elevados em Alimentação",
                    (
                        f"Seus gastos com alimentação ({format_brl(total)}) estão acima de "
                        f"{format_percent(FOOD_SHARE_OF_INCOME)} da renda. Considere cozinhar mais em casa."
                    ),
                    "alert",
                    PRIORITY_IMPORTANT,
                )
            )

        if category_matches(category, TRANSPORT_KEYWORDS) and total > agg.total_inflow * TRANSPORT_SHARE_OF_INCOME:
            findings.append(
                _rule(
                    f"transport_overrun:{category}",
                    "🚗 Transporte Custando Muito",
                    (
                        f"Gastos com transporte ({format_brl(total)}) ultrapassaram "
                        f"{format_percent(TRANSPORT_SHARE_OF_INCOME)} da renda. Avalie alternativas mais econômicas."
                    ),
                    "alert",
                    PRIORITY_IMPORTANT,
                )
            )

    return findings


@register
def month_end_rule(ctx: RuleContext) -> List[Finding]:
    projected = ctx.projected_month_end_balance

    if projected < 0:
        return [
            _rule(
                "month_end_deficit",
                "🚨 Risco de Saldo Negativo",
                f"Com o ritmo atual de gastos, você pode fechar o mês com déficit de {format_brl(abs(projected))}.",
                "alert",
                PRIORITY_URGENT,
            )
        ]
    if projected < ctx.balance * THIN_MARGIN_SHARE:
        return [
            _rule(
                "month_end_thin_margin",
                "⚠️ Margem Apertada",
                f"Projeção indica que você terá apenas {format_brl(projected)} no final do mês. Cuidado!",
                "alert",
                PRIORITY_IMPORTANT,
            )
        ]
    return []
