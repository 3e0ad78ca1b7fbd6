from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from equilibra.app.insights.aggregate import as_utc
from equilibra.app.insights.schema import LedgerEntry
from equilibra.app.models import Account, DIRECTIONS, MODES, Transaction, utcnow
from equilibra.app.services.account_service import get_or_create_primary_account


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

TransactionListener = Callable[[Session, Transaction], None]


@dataclass(frozen=True)
class TransactionDraft:
    amount: float
    direction: str
    category: str
    mode: str
    description: str = ""
    occurred_at: Optional[datetime] = None
    account_id: Optional[str] = None


def require_mode(mode: str) -> str:
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"mode must be one of: {', '.join(MODES)}")
    return mode


def _to_money(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _signed(txn: Transaction) -> Decimal:
    amount = _to_money(txn.amount)
    return amount if txn.direction == "inflow" else -amount


def _resolve_account(db: Session, owner_id: str, account_id: Optional[str]) -> Account:
    if not account_id:
        return get_or_create_primary_account(db, owner_id)
    account = db.get(Account, account_id)
    if not account or account.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="account not found")
    return account


def record_transaction(
    db: Session,
    owner_id: str,
    draft: TransactionDraft,
    *,
    listeners: Sequence[TransactionListener] = (),
) -> Transaction:
    """
    Insert a transaction and move the account balance in the same commit.

    Listeners run after the commit, in order, with the stored row. A failing
    listener is logged and the remaining listeners still run.
    """
    if draft.amount is None or draft.amount <= 0:
        raise HTTPException(status_code=400, detail="amount must be positive")
    if draft.direction not in DIRECTIONS:
        raise HTTPException(status_code=400, detail=f"direction must be one of: {', '.join(DIRECTIONS)}")
    require_mode(draft.mode)
    category = (draft.category or "").strip()
    if not category:
        raise HTTPException(status_code=400, detail="category is required")

    account = _resolve_account(db, owner_id, draft.account_id)
    txn = Transaction(
        owner_id=owner_id,
        account_id=account.id,
        amount=_to_money(draft.amount),
        direction=draft.direction,
        category=category,
        description=(draft.description or "").strip(),
        mode=draft.mode,
        occurred_at=as_utc(draft.occurred_at) if draft.occurred_at else utcnow(),
    )
    db.add(txn)
    account.current_balance = _to_money(account.current_balance or 0) + _signed(txn)
    account.updated_at = utcnow()
    db.commit()
    db.refresh(txn)

    for listener in listeners:
        try:
            listener(db, txn)
        except (HTTPException, SQLAlchemyError):
            db.rollback()
            logger.exception(
                "Transaction listener %s failed for transaction_id=%s",
                getattr(listener, "__name__", "unknown"),
                txn.id,
            )
    return txn


def delete_transaction(db: Session, owner_id: str, transaction_id: str) -> None:
    txn = db.get(Transaction, transaction_id)
    if not txn or txn.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="transaction not found")
    account = db.get(Account, txn.account_id)
    if account is not None:
        account.current_balance = _to_money(account.current_balance or 0) - _signed(txn)
        account.updated_at = utcnow()
    db.delete(txn)
    db.commit()


def list_transactions(
    db: Session,
    owner_id: str,
    *,
    mode: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100,
) -> List[Transaction]:
    stmt = select(Transaction).where(Transaction.owner_id == owner_id)
    if mode:
        stmt = stmt.where(Transaction.mode == require_mode(mode))
    if start:
        stmt = stmt.where(Transaction.occurred_at >= as_utc(start))
    if end:
        stmt = stmt.where(Transaction.occurred_at <= as_utc(end))
    stmt = stmt.order_by(Transaction.occurred_at.desc(), Transaction.id.desc()).limit(limit)
    return db.execute(stmt).scalars().all()


def fetch_ledger_entries(
    db: Session,
    owner_id: str,
    mode: Optional[str],
    start: datetime,
    end: datetime,
) -> List[LedgerEntry]:
    """Bounded, oldest-first read of an owner's ledger in the engine's shape."""
    stmt = select(Transaction).where(
        Transaction.owner_id == owner_id,
        Transaction.occurred_at >= as_utc(start),
        Transaction.occurred_at <= as_utc(end),
    )
    if mode:
        stmt = stmt.where(Transaction.mode == mode)
    rows = db.execute(stmt.order_by(Transaction.occurred_at.asc(), Transaction.id.asc())).scalars().all()
    return [
        LedgerEntry(
            amount=float(row.amount),
            direction=row.direction,
            category=row.category,
            occurred_at=as_utc(row.occurred_at),
        )
        for row in rows
    ]
