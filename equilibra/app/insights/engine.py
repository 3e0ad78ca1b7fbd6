from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from .aggregate import (
    ANALYSIS_WINDOW_DAYS,
    aggregate_month_to_date,
    aggregate_window,
    as_utc,
    monthly_outflows,
    within_days,
)
from .ranking import rank_findings
from .rules import RuleContext, evaluate_rules
from .schema import Finding, LedgerEntry, welcome_finding
from .trend import project_month_end_balance, trend_findings


@dataclass(frozen=True)
class AnalysisInput:
    """
    Everything one engine run looks at.

    entries must already be bounded to the trend window (six calendar months);
    the 30-day and month-to-date windows are sliced from it.
    """

    entries: Sequence[LedgerEntry]
    balance: float
    now: datetime
    mode: str = "personal"

    def analysis_window(self) -> List[LedgerEntry]:
        now = as_utc(self.now)
        return [
            e for e in within_days(self.entries, now, ANALYSIS_WINDOW_DAYS)
            if as_utc(e.occurred_at) <= now
        ]


class InsightGenerator(Protocol):
    name: str

    def generate(self, data: AnalysisInput) -> List[Finding]:
        ...


class RuleBasedGenerator:
    """Fixed threshold rules plus the linear spending trend."""

    name = "rules"

    def generate(self, data: AnalysisInput) -> List[Finding]:
        window = data.analysis_window()
        month = aggregate_month_to_date(data.entries, data.now)
        ctx = RuleContext(
            aggregates=aggregate_window(window, data.now),
            balance=float(data.balance),
            projected_month_end_balance=project_month_end_balance(float(data.balance), month),
        )
        findings = evaluate_rules(ctx)
        findings.extend(trend_findings(monthly_outflows(data.entries, data.now)))
        return findings


def analyze(data: AnalysisInput, generator: Optional[InsightGenerator] = None) -> List[Finding]:
    """
    Ranked findings for one owner+mode.

    An empty 30-day window short-circuits to the welcome finding without
    consulting the generator.
    """
    if not data.analysis_window():
        return [welcome_finding()]
    generator = generator or RuleBasedGenerator()
    return rank_findings(generator.generate(data))
