# nftmarket/api/v1/ledger.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db
from nftmarket.schemas.ledger import ChainVerifyOut, LedgerEntryOut
from nftmarket.services.deployment_service import DeploymentService
from nftmarket.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])


def _require_marketplace(db: Session, marketplace: str) -> None:
    try:
        DeploymentService().get_marketplace(db, marketplace)
    except MarketplaceError as e:
        raise to_http_exception(e)


@router.get("/{marketplace}", response_model=List[LedgerEntryOut])
def list_ledger_entries(
    marketplace: str,
    listing_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Read-only ledger view.
    """
    _require_marketplace(db, marketplace)
    return LedgerService().list_entries(db, marketplace=marketplace, listing_id=listing_id)


@router.get("/{marketplace}/verify", response_model=ChainVerifyOut)
def verify_ledger(marketplace: str, db: Session = Depends(get_db)):
    _require_marketplace(db, marketplace)
    svc = LedgerService()
    valid = svc.verify_chain(db, marketplace=marketplace)
    if not valid:
        logger.warning("ledger chain verification failed marketplace=%s", marketplace)
    return ChainVerifyOut(
        marketplace=marketplace,
        entries=len(svc.list_entries(db, marketplace=marketplace)),
        valid=valid,
    )
