from .engine import AnalysisInput, InsightGenerator, RuleBasedGenerator, analyze
from .ranking import MAX_FINDINGS, rank_findings
from .schema import Finding, LedgerEntry, welcome_finding
from .trend import fit_line, project_month_end_balance, project_next_month

__all__ = [
    "AnalysisInput",
    "Finding",
    "InsightGenerator",
    "LedgerEntry",
    "MAX_FINDINGS",
    "RuleBasedGenerator",
    "analyze",
    "fit_line",
    "project_month_end_balance",
    "project_next_month",
    "rank_findings",
    "welcome_finding",
]
