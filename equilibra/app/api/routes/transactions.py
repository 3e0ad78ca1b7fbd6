from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import insight_service, transaction_service
from equilibra.app.services.transaction_service import TransactionDraft

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


class TransactionIn(BaseModel):
    amount: float = Field(gt=0)
    direction: Literal["inflow", "outflow"]
    category: str = Field(min_length=1, max_length=120)
    mode: Literal["work", "personal"]
    description: str = Field(default="", max_length=300)
    occurred_at: Optional[datetime] = None
    account_id: Optional[str] = None


class TransactionOut(BaseModel):
    id: str
    account_id: str
    amount: float
    direction: str
    category: str
    description: str
    mode: str
    occurred_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    req: TransactionIn,
    refresh_insights: bool = Query(False),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    listeners = [insight_service.refresh_after_transaction] if refresh_insights else []
    return transaction_service.record_transaction(
        db,
        owner.id,
        TransactionDraft(**req.model_dump()),
        listeners=listeners,
    )


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    mode: Optional[Literal["work", "personal"]] = Query(default=None),
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    limit: int = Query(100, ge=1, le=500),
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return transaction_service.list_transactions(db, owner.id, mode=mode, start=start, end=end, limit=limit)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    transaction_service.delete_transaction(db, owner.id, transaction_id)
    return Response(status_code=204)
