from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from equilibra.app.api.deps import get_current_owner
from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services import offer_service

router = APIRouter(prefix="/api/offers", tags=["offers"])


class OfferOut(BaseModel):
    id: str
    kind: str
    title: str
    description: str
    details: Dict[str, Any]
    valid_until: Optional[datetime] = None
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/generate", response_model=List[OfferOut])
def generate_offers(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return offer_service.generate_offers(db, owner.id)


@router.get("", response_model=List[OfferOut])
def list_offers(
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return offer_service.list_active_offers(db, owner.id)


@router.post("/{offer_id}/deactivate", response_model=OfferOut)
def deactivate_offer(
    offer_id: str,
    owner: Profile = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return offer_service.deactivate_offer(db, owner.id, offer_id)
