from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from equilibra.app.insights import AnalysisInput, Finding, InsightGenerator, RuleBasedGenerator, analyze
from equilibra.app.insights.aggregate import as_utc, trend_window_start
from equilibra.app.integrations.ai_gateway import AIGatewayError, ai_gateway_is_configured
from equilibra.app.integrations.ai_insights import AIInsightGenerator
from equilibra.app.models import Insight, Transaction, utcnow
from equilibra.app.services.account_service import primary_balance
from equilibra.app.services.transaction_service import fetch_ledger_entries, require_mode


logger = logging.getLogger(__name__)

STRATEGIES = ("rules", "ai")


def default_strategy() -> str:
    value = (os.getenv("INSIGHTS_STRATEGY") or "rules").strip().lower()
    return value if value in STRATEGIES else "rules"


def resolve_generator(strategy: Optional[str] = None) -> InsightGenerator:
    name = (strategy or default_strategy()).strip().lower()
    if name == "rules":
        return RuleBasedGenerator()
    if name == "ai":
        if not ai_gateway_is_configured():
            raise HTTPException(status_code=500, detail="AI gateway is not configured")
        return AIInsightGenerator()
    raise HTTPException(status_code=400, detail=f"strategy must be one of: {', '.join(STRATEGIES)}")


def build_analysis_input(db: Session, owner_id: str, mode: str, now: datetime) -> AnalysisInput:
    now = as_utc(now)
    entries = fetch_ledger_entries(db, owner_id, mode, trend_window_start(now), now)
    return AnalysisInput(
        entries=entries,
        balance=primary_balance(db, owner_id),
        now=now,
        mode=mode,
    )


def _run_generator(data: AnalysisInput, generator: InsightGenerator) -> List[Finding]:
    try:
        return analyze(data, generator)
    except AIGatewayError as exc:
        logger.warning("AI insight generation failed: %s", exc)
        if exc.status_code == 429:
            raise HTTPException(status_code=429, detail="Limite de requisições atingido. Aguarde alguns segundos.") from exc
        if exc.status_code == 402:
            raise HTTPException(status_code=402, detail="Créditos insuficientes no workspace.") from exc
        raise HTTPException(status_code=502, detail="AI gateway request failed") from exc


def replace_unread_insights(
    db: Session,
    owner_id: str,
    findings: List[Finding],
    *,
    generated_at: Optional[datetime] = None,
) -> List[Insight]:
    """Swap the owner's unread batch for `findings` in a single commit. Read insights stay."""
    generated_at = generated_at or utcnow()
    rows = [
        Insight(
            owner_id=owner_id,
            title=f.title,
            message=f.message,
            kind=f.kind,
            source=f.source,
            priority=f.priority,
            generated_at=generated_at,
            read=False,
        )
        for f in findings
    ]
    try:
        db.execute(delete(Insight).where(Insight.owner_id == owner_id, Insight.read.is_(False)))
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store insights for owner_id=%s", owner_id)
        raise HTTPException(status_code=500, detail="failed to store insights") from exc
    return rows


def generate_insights(
    db: Session,
    owner_id: str,
    mode: str,
    *,
    now: Optional[datetime] = None,
    generator: Optional[InsightGenerator] = None,
) -> List[Insight]:
    require_mode(mode)
    now = as_utc(now) if now else utcnow()
    data = build_analysis_input(db, owner_id, mode, now)
    findings = _run_generator(data, generator or resolve_generator())
    rows = replace_unread_insights(db, owner_id, findings, generated_at=now)
    logger.info(
        "Generated %s insights for owner_id=%s mode=%s from %s ledger entries",
        len(rows),
        owner_id,
        mode,
        len(data.entries),
    )
    return rows


def refresh_after_transaction(db: Session, txn: Transaction) -> None:
    """Transaction listener: regenerate the owner's insights for the transaction's mode."""
    generate_insights(db, txn.owner_id, txn.mode)


def list_insights(db: Session, owner_id: str, *, unread_only: bool = False, limit: int = 50) -> List[Insight]:
    stmt = select(Insight).where(Insight.owner_id == owner_id)
    if unread_only:
        stmt = stmt.where(Insight.read.is_(False))
    stmt = stmt.order_by(Insight.priority.asc(), Insight.generated_at.desc(), Insight.id.asc()).limit(limit)
    return db.execute(stmt).scalars().all()


def mark_read(db: Session, owner_id: str, insight_id: str) -> Insight:
    insight = db.get(Insight, insight_id)
    if not insight or insight.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="insight not found")
    if not insight.read:
        insight.read = True
        db.commit()
        db.refresh(insight)
    return insight
