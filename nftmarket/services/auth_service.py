# nftmarket/services/auth_service.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.security import hash_password, new_address, verify_password
from nftmarket.models.account import Account
from nftmarket.policies.rbac import Principal

logger = logging.getLogger(__name__)


def _principal(acct: Account) -> Principal:
    return Principal(address=acct.address, username=acct.username, display_name=acct.display_name)


def authenticate(db: Session, username: str, password: str) -> Principal | None:
    acct = db.execute(
        select(Account).where(Account.username == username, Account.is_active.is_(True))
    ).scalar_one_or_none()

    if not acct:
        return None

    if not verify_password(password, acct.password_hash):
        return None

    return _principal(acct)


def register(
    db: Session,
    *,
    username: str,
    password: str,
    display_name: str,
    address: Optional[str] = None,
) -> Principal:
    """
    Create a login. Without an explicit address a fresh one is allocated.
    Flushes only; the caller commits.
    """
    exists = db.execute(select(Account.id).where(Account.username == username)).first()
    if exists:
        raise ValueError(f"Username {username} is taken.")

    address = address or new_address()
    if db.execute(select(Account.id).where(Account.address == address)).first():
        raise ValueError(f"Address {address} already has a login.")

    acct = Account(
        address=address,
        display_name=display_name,
        username=username,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(acct)
    db.flush()
    logger.info("account registered username=%s address=%s", username, address)
    return _principal(acct)
