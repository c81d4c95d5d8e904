# nftmarket/api/v1/roles.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db, transaction
from nftmarket.models.enums import Role
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.roles import RoleCheckOut, RoleGrantRequest, RolesOut
from nftmarket.services.audit_service import AuditAction, audit_event
from nftmarket.services.role_service import RoleService

router = APIRouter(prefix="/roles")


@router.get("/{scope}/accounts/{account}", response_model=RolesOut)
def roles_of(scope: str, account: str, db: Session = Depends(get_db)):
    roles = RoleService().roles_of(db, scope=scope, account=account)
    return RolesOut(scope=scope, account=account, roles=roles)


@router.get("/{scope}/{role}/{account}", response_model=RoleCheckOut)
def has_role(scope: str, role: Role, account: str, db: Session = Depends(get_db)):
    ok = RoleService().has_role(db, scope=scope, role=role, account=account)
    return RoleCheckOut(scope=scope, role=role, account=account, has_role=ok)


def _change(
    request: Request,
    scope: str,
    req: RoleGrantRequest,
    db: Session,
    principal: Principal,
    *,
    grant: bool,
) -> RoleCheckOut:
    svc = RoleService()
    try:
        with transaction(db):
            svc.require_role(db, scope=scope, role=Role.ADMIN, account=principal.address)
            if grant:
                svc.grant_role(db, scope=scope, role=req.role, account=req.account, granted_by=principal.address)
            else:
                svc.revoke_role(db, scope=scope, role=req.role, account=req.account)
    except MarketplaceError as e:
        raise to_http_exception(e)

    audit_event(
        db,
        request=request,
        actor=principal.address,
        scope=scope,
        action=AuditAction.ROLE_GRANTED if grant else AuditAction.ROLE_REVOKED,
        payload_summary={"role": req.role.value, "account": req.account},
    )
    return RoleCheckOut(
        scope=scope,
        role=req.role,
        account=req.account,
        has_role=svc.has_role(db, scope=scope, role=req.role, account=req.account),
    )


@router.post("/{scope}/grant", response_model=RoleCheckOut)
def grant_role(
    request: Request,
    scope: str,
    req: RoleGrantRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _change(request, scope, req, db, principal, grant=True)


@router.post("/{scope}/revoke", response_model=RoleCheckOut)
def revoke_role(
    request: Request,
    scope: str,
    req: RoleGrantRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _change(request, scope, req, db, principal, grant=False)
