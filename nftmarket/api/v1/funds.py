# nftmarket/api/v1/funds.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db, transaction
from nftmarket.models.enums import DeploymentKind
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.funds import (
    FundsAllowanceOut,
    FundsApproveRequest,
    FundsBalanceOut,
    FundsTransferRequest,
)
from nftmarket.services.deployment_service import DeploymentService
from nftmarket.services.funds_ledger import FundsLedger

router = APIRouter(prefix="/funds")


def _require_token(db: Session, token: str) -> None:
    try:
        DeploymentService().require(db, token, DeploymentKind.FUNDS_TOKEN)
    except MarketplaceError as e:
        raise to_http_exception(e)


@router.get("/{token}/balance/{account}", response_model=FundsBalanceOut)
def balance_of(token: str, account: str, db: Session = Depends(get_db)):
    _require_token(db, token)
    return FundsBalanceOut(
        token=token,
        account=account,
        balance=FundsLedger().balance_of(db, token=token, account=account),
    )


@router.get("/{token}/allowance/{owner}/{spender}", response_model=FundsAllowanceOut)
def allowance(token: str, owner: str, spender: str, db: Session = Depends(get_db)):
    _require_token(db, token)
    return FundsAllowanceOut(
        token=token,
        owner=owner,
        spender=spender,
        allowance=FundsLedger().allowance(db, token=token, owner=owner, spender=spender),
    )


@router.post("/{token}/approve", response_model=FundsAllowanceOut)
def approve(
    token: str,
    req: FundsApproveRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _require_token(db, token)
    try:
        with transaction(db):
            FundsLedger().approve(db, token=token, owner=principal.address, spender=req.spender, amount=req.amount)
    except MarketplaceError as e:
        raise to_http_exception(e)
    return FundsAllowanceOut(token=token, owner=principal.address, spender=req.spender, allowance=req.amount)


@router.post("/{token}/transfer", response_model=FundsBalanceOut)
def transfer(
    token: str,
    req: FundsTransferRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _require_token(db, token)
    ledger = FundsLedger()
    try:
        with transaction(db):
            ledger.transfer(db, token=token, sender=principal.address, to=req.to, amount=req.amount)
    except MarketplaceError as e:
        raise to_http_exception(e)
    return FundsBalanceOut(
        token=token,
        account=principal.address,
        balance=ledger.balance_of(db, token=token, account=principal.address),
    )
