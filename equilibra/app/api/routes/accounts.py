from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import account_service

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


class AccountOut(BaseModel):
    id: str
    label: str
    kind: str
    current_balance: float
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileIn(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=200)
    preferences: Optional[Dict[str, Any]] = None


class ProfileOut(BaseModel):
    id: str
    full_name: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    accounts: List[AccountOut]


@router.get("", response_model=List[AccountOut])
def list_accounts(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return account_service.list_accounts(db, owner.id)


@router.post("/primary", response_model=AccountOut)
def ensure_primary_account(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    account = account_service.get_or_create_primary_account(db, owner.id)
    db.commit()
    db.refresh(account)
    return account


def _profile_out(db: Session, profile: Profile) -> ProfileOut:
    accounts = account_service.list_accounts(db, profile.id)
    return ProfileOut(
        id=profile.id,
        full_name=profile.full_name,
        preferences=profile.preferences or {},
        accounts=[AccountOut.model_validate(a) for a in accounts],
    )


@router.get("/me", response_model=ProfileOut)
def get_profile(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return _profile_out(db, owner)


@router.put("/me", response_model=ProfileOut)
def update_profile(
    req: ProfileIn,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    profile = account_service.update_profile(
        db,
        owner.id,
        full_name=req.full_name,
        preferences=req.preferences,
    )
    return _profile_out(db, profile)
