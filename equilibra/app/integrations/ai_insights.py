from __future__ import annotations

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from equilibra.app.insights.aggregate import aggregate_window
from equilibra.app.insights.engine import AnalysisInput
from equilibra.app.insights.formatting import format_brl, format_percent
from equilibra.app.insights.schema import Finding
from equilibra.app.integrations.ai_gateway import AIGatewayClient, AIGatewayError


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Você é um analista financeiro do Équilibra, uma plataforma para estudantes e jovens "
    "profissionais brasileiros. Analise os dados e gere de 3 a 5 insights específicos, com "
    "números reais, misturando alertas, oportunidades e informações. "
    'Tipos válidos: "alert", "opportunity", "info". '
    'Origens válidas: "linear_trend", "rule_evaluator", "heuristic". '
    "Prioridades: 1 (urgente), 2 (importante), 3 (informativo)."
)

CREATE_INSIGHTS_TOOL = {
    "type": "function",
    "function": {
        "name": "create_insights",
        "description": "Gerar insights financeiros personalizados",
        "parameters": {
            "type": "object",
            "properties": {
                "insights": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "message": {"type": "string"},
                            "kind": {"type": "string", "enum": ["alert", "opportunity", "info"]},
                            "source": {"type": "string", "enum": ["linear_trend", "rule_evaluator", "heuristic"]},
                            "priority": {"type": "integer", "minimum": 1, "maximum": 3},
                        },
                        "required": ["title", "message", "kind", "priority"],
                    },
                }
            },
            "required": ["insights"],
        },
    },
}


class AIFindingPayload(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    kind: Literal["alert", "opportunity", "info"]
    source: Literal["linear_trend", "rule_evaluator", "heuristic"] = "heuristic"
    priority: int = Field(ge=1, le=3)


def build_financial_context(data: AnalysisInput, *, top_n: int = 5, recent_n: int = 10) -> str:
    window = data.analysis_window()
    agg = aggregate_window(window, data.now)
    mode_label = "Trabalho" if data.mode == "work" else "Pessoal"
    ratio = agg.spend_ratio

    top = sorted(agg.outflow_by_category.items(), key=lambda kv: kv[1], reverse=True)[:top_n]
    recent = sorted(window, key=lambda e: e.occurred_at)[-recent_n:]

    lines = [
        f"Análise Financeira do Usuário (Modo: {mode_label})",
        "",
        "RESUMO GERAL:",
        f"- Saldo atual: {format_brl(data.balance)}",
        f"- Total de gastos (30 dias): {format_brl(agg.total_outflow)}",
        f"- Total de entradas (30 dias): {format_brl(agg.total_inflow)}",
        f"- Taxa de consumo: {format_percent(ratio, 1) if ratio is not None else 'N/A'}",
        "",
        f"TOP {top_n} CATEGORIAS DE GASTOS:",
    ]
    for idx, (category, total) in enumerate(top, start=1):
        share = total / agg.total_outflow if agg.total_outflow else 0.0
        lines.append(f"{idx}. {category}: {format_brl(total)} ({format_percent(share, 1)})")
    lines.append("")
    lines.append(f"HISTÓRICO DE TRANSAÇÕES (últimas {recent_n}):")
    for e in recent:
        label = "Entrada" if e.direction == "inflow" else "Saída"
        lines.append(f"- {label}: {format_brl(e.amount)} em {e.category} ({e.occurred_at:%d/%m/%Y})")
    return "\n".join(lines)


def parse_findings(arguments: object) -> List[Finding]:
    if not isinstance(arguments, dict) or not isinstance(arguments.get("insights"), list):
        raise AIGatewayError("AI tool call did not return an insights array")

    findings: List[Finding] = []
    for raw in arguments["insights"]:
        try:
            item = AIFindingPayload.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Dropping malformed AI insight: %s", exc.errors())
            continue
        findings.append(
            Finding(
                title=item.title,
                message=item.message,
                kind=item.kind,
                source=item.source,
                priority=item.priority,
            )
        )
    return findings


class AIInsightGenerator:
    """Delegates finding generation to the AI gateway through a forced tool call."""

    name = "ai"

    def __init__(self, *, client: Optional[AIGatewayClient] = None):
        self.client = client or AIGatewayClient()

    def generate(self, data: AnalysisInput) -> List[Finding]:
        context = build_financial_context(data)
        logger.info("Requesting AI insights for mode=%s (%s chars of context)", data.mode, len(context))
        arguments = self.client.call_tool(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": context},
            ],
            tool=CREATE_INSIGHTS_TOOL,
        )
        return parse_findings(arguments)
