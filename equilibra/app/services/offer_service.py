from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from equilibra.app.insights.aggregate import as_utc
from equilibra.app.insights.rules.spending import TRANSPORT_KEYWORDS, category_matches
from equilibra.app.models import Offer, utcnow
from equilibra.app.services.account_service import get_or_create_profile
from equilibra.app.services.transaction_service import fetch_ledger_entries


logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 30

CASHBACK_PERCENT = 5
CASHBACK_VALID_DAYS = 30

LOAN_MIN_MONTHLY_SPEND = 500.0
LOAN_MONTHLY_RATE = 1.5
LOAN_MAX_AMOUNT = 5000
LOAN_MAX_INSTALLMENTS = 12
LOAN_VALID_DAYS = 15

INSURANCE_MIN_TRANSPORT_SPEND = 200.0
INSURANCE_DISCOUNT_PERCENT = 20
INSURANCE_VALID_DAYS = 20


@dataclass(frozen=True)
class OfferCandidate:
    kind: str
    title: str
    description: str
    details: Dict[str, object] = field(default_factory=dict)
    valid_days: int = 30


def offer_candidates(outflow_by_category: Dict[str, float]) -> List[OfferCandidate]:
    """Offers suggested by a month of spending, keyed by category totals."""
    candidates: List[OfferCandidate] = []
    if outflow_by_category:
        top_category = max(outflow_by_category, key=lambda c: outflow_by_category[c])
        candidates.append(
            OfferCandidate(
                kind="cashback",
                title=f"Cashback Especial em {top_category}",
                description=(
                    f"Ganhe {CASHBACK_PERCENT}% de cashback em todas as compras de {top_category} durante este mês!"
                ),
                details={"category": top_category, "percent": CASHBACK_PERCENT, "type": "category_boost"},
                valid_days=CASHBACK_VALID_DAYS,
            )
        )

    total_spend = sum(outflow_by_category.values())
    if total_spend > LOAN_MIN_MONTHLY_SPEND:
        candidates.append(
            OfferCandidate(
                kind="loan",
                title="Empréstimo com Taxa Especial",
                description=(
                    f"Taxa de juros reduzida de {LOAN_MONTHLY_RATE}% ao mês para bons pagadores. "
                    "Até R$ 5.000 aprovados na hora!"
                ),
                details={
                    "monthly_rate": LOAN_MONTHLY_RATE,
                    "max_amount": LOAN_MAX_AMOUNT,
                    "max_installments": LOAN_MAX_INSTALLMENTS,
                },
                valid_days=LOAN_VALID_DAYS,
            )
        )

    transport_spend = sum(
        total for category, total in outflow_by_category.items() if category_matches(category, TRANSPORT_KEYWORDS)
    )
    if transport_spend > INSURANCE_MIN_TRANSPORT_SPEND:
        candidates.append(
            OfferCandidate(
                kind="insurance",
                title="Seguro Auto com Desconto",
                description=(
                    f"{INSURANCE_DISCOUNT_PERCENT}% de desconto no primeiro mês do seguro automotivo. "
                    "Proteção completa para seu veículo!"
                ),
                details={
                    "discount_percent": INSURANCE_DISCOUNT_PERCENT,
                    "insurance_type": "auto",
                    "coverage": "full",
                },
                valid_days=INSURANCE_VALID_DAYS,
            )
        )
    return candidates


def _has_active_offer(db: Session, owner_id: str, kind: str) -> bool:
    existing = db.execute(
        select(Offer.id).where(Offer.owner_id == owner_id, Offer.kind == kind, Offer.active.is_(True)).limit(1)
    ).first()
    return existing is not None


def generate_offers(db: Session, owner_id: str, *, now: Optional[datetime] = None) -> List[Offer]:
    """Insert the candidates that have no active offer of the same kind; returns the new rows."""
    now = as_utc(now) if now else utcnow()
    entries = fetch_ledger_entries(db, owner_id, None, now - timedelta(days=LOOKBACK_DAYS), now)

    outflow_by_category: Dict[str, float] = {}
    for e in entries:
        if e.direction == "outflow":
            outflow_by_category[e.category] = outflow_by_category.get(e.category, 0.0) + e.amount

    get_or_create_profile(db, owner_id)
    created: List[Offer] = []
    for candidate in offer_candidates(outflow_by_category):
        if _has_active_offer(db, owner_id, candidate.kind):
            continue
        offer = Offer(
            owner_id=owner_id,
            kind=candidate.kind,
            title=candidate.title,
            description=candidate.description,
            details=dict(candidate.details),
            valid_until=now + timedelta(days=candidate.valid_days),
            active=True,
            created_at=now,
        )
        db.add(offer)
        # flush so a duplicate kind later in the same batch is seen
        db.flush()
        created.append(offer)
    db.commit()
    if created:
        logger.info("Created %s offers for owner_id=%s", len(created), owner_id)
    return created


def list_active_offers(db: Session, owner_id: str) -> List[Offer]:
    return (
        db.execute(
            select(Offer)
            .where(Offer.owner_id == owner_id, Offer.active.is_(True))
            .order_by(Offer.created_at.desc(), Offer.id.asc())
        )
        .scalars()
        .all()
    )


def deactivate_offer(db: Session, owner_id: str, offer_id: str) -> Offer:
    offer = db.get(Offer, offer_id)
    if not offer or offer.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="offer not found")
    offer.active = False
    db.commit()
    db.refresh(offer)
    return offer
