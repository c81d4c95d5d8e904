# nftmarket/api/v1/deployments.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.config import get_settings
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db, transaction
from nftmarket.models.deployment import Deployment
from nftmarket.models.enums import DeploymentKind
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.deployments import (
    DeploymentOut,
    InitializeCollectionRequest,
    InitializeComponentRequest,
    InitializeFundsTokenRequest,
    InitializeMarketplaceRequest,
)
from nftmarket.services.audit_service import AuditAction, audit_event
from nftmarket.services.deployment_service import DeploymentService

router = APIRouter(prefix="/deployments")


# ---------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------


def _initialized(db: Session, request: Request, principal: Principal, dep: Deployment) -> DeploymentOut:
    out = DeploymentOut.model_validate(dep)
    audit_event(
        db,
        request=request,
        actor=principal.address,
        scope=out.address,
        action=AuditAction.COMPONENT_INITIALIZED,
        payload_summary={"kind": out.kind.value, "owner": out.owner},
        ref_id=out.address,
    )
    return out


# ---------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------


@router.get("", response_model=List[DeploymentOut])
def list_deployments(
    kind: Optional[DeploymentKind] = Query(default=None),
    db: Session = Depends(get_db),
):
    return DeploymentService().list_deployments(db, kind)


@router.get("/{address}", response_model=DeploymentOut)
def get_deployment(address: str, db: Session = Depends(get_db)):
    dep = DeploymentService().get(db, address)
    if dep is None:
        raise HTTPException(status_code=404, detail="Deployment not found.")
    return dep


# ---------------------------------------------------------------------
# initializers (caller becomes ADMIN of the new component)
# ---------------------------------------------------------------------


@router.post("/single-nft", response_model=DeploymentOut, status_code=201)
def initialize_single_nft(
    request: Request,
    req: InitializeCollectionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            dep = DeploymentService().initialize_single_nft(
                db, owner=principal.address, name=req.name, symbol=req.symbol, address=req.address
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)


@router.post("/multi-nft", response_model=DeploymentOut, status_code=201)
def initialize_multi_nft(
    request: Request,
    req: InitializeCollectionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            dep = DeploymentService().initialize_multi_nft(
                db,
                owner=principal.address,
                name=req.name,
                symbol=req.symbol,
                uri=req.uri,
                address=req.address,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)


@router.post("/ownership-certificate", response_model=DeploymentOut, status_code=201)
def initialize_ownership_certificate(
    request: Request,
    req: InitializeComponentRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            dep = DeploymentService().initialize_ownership_certificate(
                db, owner=principal.address, address=req.address
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)


@router.post("/license", response_model=DeploymentOut, status_code=201)
def initialize_license(
    request: Request,
    req: InitializeComponentRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            dep = DeploymentService().initialize_license(db, owner=principal.address, address=req.address)
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)


@router.post("/funds-token", response_model=DeploymentOut, status_code=201)
def initialize_funds_token(
    request: Request,
    req: InitializeFundsTokenRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    initial_balance = req.initial_balance
    if initial_balance is None:
        initial_balance = get_settings().mock_funds_initial_balance

    try:
        with transaction(db):
            dep = DeploymentService().initialize_funds_token(
                db,
                owner=principal.address,
                name=req.name,
                symbol=req.symbol,
                holders=req.holders,
                initial_balance=initial_balance,
                address=req.address,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)


@router.post("/marketplace", response_model=DeploymentOut, status_code=201)
def initialize_marketplace(
    request: Request,
    req: InitializeMarketplaceRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        with transaction(db):
            dep = DeploymentService().initialize_marketplace(
                db,
                owner=req.owner or principal.address,
                funds_token=req.funds_token,
                single_nft=req.single_nft,
                multi_nft=req.multi_nft,
                ownership_certificate=req.ownership_certificate,
                license=req.license,
                address=req.address,
            )
    except MarketplaceError as e:
        raise to_http_exception(e)
    return _initialized(db, request, principal, dep)
