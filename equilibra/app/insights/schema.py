from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

Kind = Literal["alert", "opportunity", "info"]
Source = Literal["linear_trend", "rule_evaluator", "heuristic"]
Direction = Literal["inflow", "outflow"]

PRIORITY_URGENT = 1
PRIORITY_IMPORTANT = 2
PRIORITY_INFORMATIONAL = 3


@dataclass(frozen=True)
class LedgerEntry:
    """One transaction as the engine sees it: positive amount, signed by direction."""

    amount: float
    direction: Direction
    category: str
    occurred_at: datetime


@dataclass(frozen=True)
class Finding:
    title: str
    message: str
    kind: Kind
    source: Source
    priority: int
    key: Optional[str] = None


WELCOME_KEY = "welcome"


def welcome_finding() -> Finding:
    return Finding(
        key=WELCOME_KEY,
        title="👋 Bem-vindo ao Équilibra",
        message=(
            "Comece registrando suas transações para receber insights personalizados "
            "sobre seus hábitos financeiros!"
        ),
        kind="info",
        source="heuristic",
        priority=PRIORITY_INFORMATIONAL,
    )
