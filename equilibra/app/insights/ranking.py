from __future__ import annotations

from typing import Iterable, List

from .schema import Finding, welcome_finding


MAX_FINDINGS = 10


def rank_findings(findings: Iterable[Finding], limit: int = MAX_FINDINGS) -> List[Finding]:
    """Most urgent first; ties keep their generation order. Never returns an empty batch."""
    ranked = sorted(findings, key=lambda f: f.priority)[:limit]
    if not ranked:
        return [welcome_finding()]
    return ranked
