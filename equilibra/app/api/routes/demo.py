from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import demo_seed_service

router = APIRouter(prefix="/api/demo", tags=["demo"])


class SeedOut(BaseModel):
    owner_id: str
    transactions: int
    balance: float


class ClearOut(BaseModel):
    owner_id: str
    transactions: int
    insights: int


@router.post("/seed", response_model=SeedOut, status_code=201)
def seed_demo(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    result = demo_seed_service.seed_demo_data(db, owner.id)
    return SeedOut(owner_id=owner.id, transactions=result.transactions, balance=result.balance)


@router.post("/clear", response_model=ClearOut)
def clear_demo(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    counts = demo_seed_service.clear_demo_data(db, owner.id)
    return ClearOut(owner_id=owner.id, **counts)
