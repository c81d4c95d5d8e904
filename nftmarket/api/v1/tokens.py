# nftmarket/api/v1/tokens.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db, transaction
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.tokens import (
    ApprovalOut,
    ApprovalRequest,
    HolderOut,
    IssueCertificateRequest,
    MintMultiRequest,
    MintSingleRequest,
    TokenBalanceOut,
    TokenDetailOut,
    TokenOut,
    TokenTransferRequest,
)
from nftmarket.services.ownership_registry import OwnershipRegistry

router = APIRouter(prefix="/tokens")


# ---------------------------------------------------------------------
# issuance
# ---------------------------------------------------------------------


@router.post("/{collection}/single", response_model=TokenOut, status_code=201)
def mint_single(
    collection: str,
    req: MintSingleRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            token = OwnershipRegistry().create_single(
                db, collection=collection, minter=principal.address, to=req.to, uri=req.uri
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return token


@router.post("/{collection}/multi", response_model=TokenOut, status_code=201)
def mint_multi(
    collection: str,
    req: MintMultiRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            token = OwnershipRegistry().create_multi(
                db,
                collection=collection,
                minter=principal.address,
                to=req.to,
                amount=req.amount,
                uri=req.uri,
                data=req.data,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return token


@router.post("/{collection}/certificates", response_model=TokenOut, status_code=201)
def issue_certificate(
    collection: str,
    req: IssueCertificateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            token = OwnershipRegistry().issue_certificate(
                db,
                collection=collection,
                governor=principal.address,
                to=req.to,
                creator=req.creator,
                uri=req.uri,
                data=req.data,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return token


# ---------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------


@router.get("/{collection}/{token_id}", response_model=TokenDetailOut)
def get_token(collection: str, token_id: int, db: Session = Depends(get_db)):
    registry = OwnershipRegistry()
    try:
        token = registry.require_token(db, collection=collection, token_id=token_id)
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = TokenDetailOut.model_validate(token)
    out.holders = [
        HolderOut.model_validate(h)
        for h in registry.holders_of(db, collection=collection, token_id=token_id)
    ]
    return out


@router.get("/{collection}/{token_id}/balance/{owner}", response_model=TokenBalanceOut)
def balance_of(collection: str, token_id: int, owner: str, db: Session = Depends(get_db)):
    balance = OwnershipRegistry().balance_of(db, collection=collection, token_id=token_id, owner=owner)
    return TokenBalanceOut(collection=collection, token_id=token_id, owner=owner, balance=balance)


@router.get("/{collection}/approval/{owner}/{operator}", response_model=ApprovalOut)
def is_approved_for_all(collection: str, owner: str, operator: str, db: Session = Depends(get_db)):
    approved = OwnershipRegistry().is_approved_for_all(db, collection=collection, owner=owner, operator=operator)
    return ApprovalOut(collection=collection, owner=owner, operator=operator, approved=approved)


# ---------------------------------------------------------------------
# approvals / transfers
# ---------------------------------------------------------------------


@router.post("/{collection}/approval", response_model=ApprovalOut)
def set_approval_for_all(
    collection: str,
    req: ApprovalRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            OwnershipRegistry().set_approval_for_all(
                db,
                collection=collection,
                owner=principal.address,
                operator=req.operator,
                approved=req.approved,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return ApprovalOut(collection=collection, owner=principal.address, operator=req.operator, approved=req.approved)


@router.post("/{collection}/transfer", response_model=TokenBalanceOut)
def transfer(
    collection: str,
    req: TokenTransferRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    registry = OwnershipRegistry()
    try:
        with transaction(db):
            registry.transfer(
                db,
                collection=collection,
                operator=principal.address,
                from_=req.from_,
                to=req.to,
                token_id=req.token_id,
                amount=req.amount,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)

    balance = registry.balance_of(db, collection=collection, token_id=req.token_id, owner=req.to)
    return TokenBalanceOut(collection=collection, token_id=req.token_id, owner=req.to, balance=balance)
