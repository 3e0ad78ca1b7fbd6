from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..aggregate import WindowAggregates
from ..schema import Finding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleContext:
    aggregates: WindowAggregates
    balance: float
    projected_month_end_balance: float


Rule = Callable[[RuleContext], Sequence[Finding]]
_RULES: List[Rule] = []


def register(fn: Rule) -> Rule:
    _RULES.append(fn)
    return fn


def registered_rules() -> List[Rule]:
    return list(_RULES)


def evaluate_rules(ctx: RuleContext) -> List[Finding]:
    """Run every rule in registration order. A failing rule contributes nothing."""
    findings: List[Finding] = []
    for rule in _RULES:
        try:
            findings.extend(rule(ctx))
        except (ArithmeticError, ValueError, KeyError):
            logger.warning("Insight rule %s could not be evaluated", getattr(rule, "__name__", "unknown"), exc_info=True)
    return findings


# Import modules so @register decorators run; order here is evaluation order
from . import spending  # noqa: E402,F401
from . import habits    # noqa: E402,F401
