# equilibra/app/api/deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from equilibra.app.db import get_db
from equilibra.app.models import Profile
from equilibra.app.services.account_service import get_or_create_profile


MAX_OWNER_ID_LENGTH = 64


def get_current_owner(
    request: Request,
    db: Session = Depends(get_db),
) -> Profile:
    """
    Identity dependency.

    Reads the owner from headers:
      - X-User-Id   (required; the auth layer's subject)
      - X-User-Name (optional; used when the profile is first provisioned)

    Every service call downstream is scoped to the returned profile id.
    """
    owner_id = (request.headers.get("X-User-Id") or "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    if len(owner_id) > MAX_OWNER_ID_LENGTH:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")

    profile = db.get(Profile, owner_id)
    if profile:
        return profile
    try:
        profile = get_or_create_profile(db, owner_id, full_name=request.headers.get("X-User-Name"))
        db.commit()
    except IntegrityError:
        # a concurrent first request provisioned the same owner
        db.rollback()
        profile = db.get(Profile, owner_id)
        if profile is None:
            raise
        return profile
    db.refresh(profile)
    return profile
