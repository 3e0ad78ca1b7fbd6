from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from equilibra.app.insights.aggregate import as_utc
from equilibra.app.models import Insight, Transaction, utcnow
from equilibra.app.services.account_service import get_or_create_primary_account, list_accounts


# (direction, category, description, amount, mode, day of month)
SAMPLE_TRANSACTIONS: List[Tuple[str, str, str, str, str, int]] = [
    ("inflow", "Salário", "Salário CLT", "3500.00", "work", 5),
    ("inflow", "Freelance", "Projeto de desenvolvimento web", "1200.00", "work", 12),
    ("outflow", "Transporte", "Uber para reunião cliente", "45.80", "work", 10),
    ("outflow", "Alimentação", "Almoço reunião de negócios", "78.90", "work", 11),
    ("outflow", "Tecnologia", "Assinatura Adobe Creative Cloud", "85.00", "work", 1),
    ("outflow", "Alimentação", "Supermercado", "287.50", "personal", 8),
    ("outflow", "Alimentação", "iFood - Jantar", "52.90", "personal", 15),
    ("outflow", "Transporte", "Uber para faculdade", "28.40", "personal", 9),
    ("outflow", "Transporte", "Recarga Bilhete Único", "100.00", "personal", 3),
    ("outflow", "Educação", "Mensalidade Faculdade", "890.00", "personal", 7),
    ("outflow", "Educação", "Livros universitários", "145.00", "personal", 14),
    ("outflow", "Lazer", "Netflix", "39.90", "personal", 1),
    ("outflow", "Lazer", "Cinema com amigos", "67.00", "personal", 13),
    ("outflow", "Saúde", "Farmácia - Medicamentos", "89.50", "personal", 6),
    ("outflow", "Moradia", "Aluguel República", "650.00", "personal", 5),
    ("outflow", "Utilidades", "Conta de Luz", "135.80", "personal", 4),
    ("outflow", "Utilidades", "Internet banda larga", "99.90", "personal", 2),
    ("outflow", "Vestuário", "Roupas para estágio", "189.90", "personal", 16),
]


@dataclass(frozen=True)
class SeedResult:
    transactions: int
    balance: float


def _sample_date(now: datetime, day: int) -> datetime:
    # keep sample rows out of the future early in the month
    occurred = datetime(now.year, now.month, min(day, now.day), 12, 0, tzinfo=timezone.utc)
    return min(occurred, now)


def seed_demo_data(db: Session, owner_id: str, *, now: Optional[datetime] = None) -> SeedResult:
    now = as_utc(now) if now else utcnow()
    existing = db.execute(
        select(func.count()).select_from(Transaction).where(Transaction.owner_id == owner_id)
    ).scalar_one()
    if existing:
        raise HTTPException(
            status_code=409,
            detail="transactions already exist; clear the data before loading the sample set",
        )

    account = get_or_create_primary_account(db, owner_id)
    balance = Decimal("0.00")
    for direction, category, description, amount, mode, day in SAMPLE_TRANSACTIONS:
        value = Decimal(amount)
        db.add(
            Transaction(
                owner_id=owner_id,
                account_id=account.id,
                amount=value,
                direction=direction,
                category=category,
                description=description,
                mode=mode,
                occurred_at=_sample_date(now, day),
            )
        )
        balance += value if direction == "inflow" else -value

    account.current_balance = balance
    account.updated_at = now
    db.commit()
    return SeedResult(transactions=len(SAMPLE_TRANSACTIONS), balance=float(balance))


def clear_demo_data(db: Session, owner_id: str) -> Dict[str, int]:
    insights = db.execute(delete(Insight).where(Insight.owner_id == owner_id)).rowcount
    transactions = db.execute(delete(Transaction).where(Transaction.owner_id == owner_id)).rowcount
    for account in list_accounts(db, owner_id):
        account.current_balance = Decimal("0.00")
        account.updated_at = utcnow()
    db.commit()
    return {"insights": insights or 0, "transactions": transactions or 0}
