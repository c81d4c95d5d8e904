# nftmarket/services/role_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.errors import Unauthorized
from nftmarket.models.enums import Role
from nftmarket.models.role_grant import RoleGrant

logger = logging.getLogger(__name__)


class RoleService:
    """
    Role registry: (scope, role, account) grants.
    Pure lookup/grant/revoke; callers decide who may grant.
    """

    def _get_grant(self, db: Session, scope: str, role: Role, account: str) -> Optional[RoleGrant]:
        return db.execute(
            select(RoleGrant).where(
                RoleGrant.scope == scope,
                RoleGrant.role == role.value,
                RoleGrant.account == account,
            )
        ).scalar_one_or_none()

    def has_role(self, db: Session, *, scope: str, role: Role, account: str) -> bool:
        grant = self._get_grant(db, scope, role, account)
        return bool(grant and grant.active)

    def require_role(self, db: Session, *, scope: str, role: Role, account: str) -> None:
        if not self.has_role(db, scope=scope, role=role, account=account):
            logger.warning("role check failed scope=%s role=%s account=%s", scope, role.value, account)
            raise Unauthorized(f"{account} lacks role {role.value} on {scope}.")

    def grant_role(
        self,
        db: Session,
        *,
        scope: str,
        role: Role,
        account: str,
        granted_by: Optional[str] = None,
    ) -> RoleGrant:
        grant = self._get_grant(db, scope, role, account)
        if grant is None:
            grant = RoleGrant(scope=scope, role=role.value, account=account, active=True, granted_by=granted_by)
            db.add(grant)
        else:
            grant.active = True
            grant.granted_by = granted_by
        db.flush()
        logger.info("role granted scope=%s role=%s account=%s", scope, role.value, account)
        return grant

    def revoke_role(self, db: Session, *, scope: str, role: Role, account: str) -> None:
        grant = self._get_grant(db, scope, role, account)
        if grant is None or not grant.active:
            return
        grant.active = False
        db.flush()
        logger.info("role revoked scope=%s role=%s account=%s", scope, role.value, account)

    def roles_of(self, db: Session, *, scope: str, account: str) -> List[Role]:
        rows = db.execute(
            select(RoleGrant.role).where(
                RoleGrant.scope == scope,
                RoleGrant.account == account,
                RoleGrant.active.is_(True),
            )
        ).scalars().all()
        return sorted((Role(r) for r in rows), key=lambda r: r.value)
