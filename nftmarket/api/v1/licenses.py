# nftmarket/api/v1/licenses.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.clock import Clock, get_clock
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.licenses import GrantLicenseRequest, IsLicensedOut, LicenseOut
from nftmarket.services.audit_service import AuditAction, audit_event
from nftmarket.services.license_service import LicenseService

router = APIRouter(prefix="/licenses")


@router.post("/{license_contract}", response_model=LicenseOut, status_code=201)
def grant_license(
    request: Request,
    license_contract: str,
    req: GrantLicenseRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    try:
        row = LicenseService(clock).grant_license(
            db,
            license_contract=license_contract,
            collection=req.collection,
            token_id=req.token_id,
            term_length_units=req.term_length_units,
            licensee=req.licensee,
            grantor=principal.address,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = LicenseOut.model_validate(row)
    audit_event(
        db,
        request=request,
        actor=principal.address,
        scope=license_contract,
        action=AuditAction.LICENSE_GRANTED,
        payload_summary={
            "collection": out.collection,
            "token_id": out.token_id,
            "licensee": out.licensee,
            "term_units": out.term_units,
        },
        ref_id=str(out.id),
    )
    return out


@router.get("/{license_contract}/check", response_model=IsLicensedOut)
def is_licensed(
    license_contract: str,
    collection: str = Query(...),
    token_id: int = Query(..., ge=1),
    account: str = Query(...),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    ok = LicenseService(clock).is_licensed(
        db,
        license_contract=license_contract,
        collection=collection,
        token_id=token_id,
        account=account,
    )
    return IsLicensedOut(collection=collection, token_id=token_id, account=account, is_licensed=ok)


@router.get("/{license_contract}/{collection}/{token_id}", response_model=List[LicenseOut])
def list_licenses(
    license_contract: str,
    collection: str,
    token_id: int,
    db: Session = Depends(get_db),
):
    return LicenseService().list_licenses(
        db, license_contract=license_contract, collection=collection, token_id=token_id
    )
