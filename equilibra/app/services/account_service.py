from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from equilibra.app.models import Account, PRIMARY_ACCOUNT_KIND, Profile


logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_LABEL = "Conta Principal"


def get_or_create_profile(db: Session, owner_id: str, *, full_name: Optional[str] = None) -> Profile:
    profile = db.get(Profile, owner_id)
    if profile:
        return profile
    profile = Profile(id=owner_id, full_name=full_name)
    db.add(profile)
    db.flush()
    return profile


def get_primary_account(db: Session, owner_id: str) -> Optional[Account]:
    return (
        db.execute(
            select(Account)
            .where(Account.owner_id == owner_id, Account.kind == PRIMARY_ACCOUNT_KIND)
            .order_by(Account.created_at.asc(), Account.id.asc())
            .limit(1)
        )
        .scalars()
        .first()
    )


def get_or_create_primary_account(db: Session, owner_id: str) -> Account:
    account = get_primary_account(db, owner_id)
    if account:
        return account
    get_or_create_profile(db, owner_id)
    account = Account(
        owner_id=owner_id,
        label=DEFAULT_ACCOUNT_LABEL,
        kind=PRIMARY_ACCOUNT_KIND,
        current_balance=Decimal("0.00"),
    )
    db.add(account)
    db.flush()
    return account


def primary_balance(db: Session, owner_id: str) -> float:
    """Point-in-time balance of the primary account; an owner without one has zero."""
    account = get_primary_account(db, owner_id)
    if account is None:
        logger.warning("No primary account for owner_id=%s; treating balance as zero", owner_id)
        return 0.0
    return float(account.current_balance or 0)


def list_accounts(db: Session, owner_id: str) -> List[Account]:
    return (
        db.execute(
            select(Account)
            .where(Account.owner_id == owner_id)
            .order_by(Account.created_at.asc(), Account.id.asc())
        )
        .scalars()
        .all()
    )


def update_profile(
    db: Session,
    owner_id: str,
    *,
    full_name: Optional[str] = None,
    preferences: Optional[Dict[str, Any]] = None,
) -> Profile:
    """Fields left as None keep their stored value; preferences are replaced as a whole."""
    profile = get_or_create_profile(db, owner_id)
    if full_name is not None:
        profile.full_name = full_name.strip() or None
    if preferences is not None:
        profile.preferences = dict(preferences)
    db.commit()
    db.refresh(profile)
    return profile
