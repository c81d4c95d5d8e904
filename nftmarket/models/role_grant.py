from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class RoleGrant(Base):
    """
    (scope, role, account) permission. Revocation flips `active`; the row
    is kept so that a later grant re-activates it.
    """

    __tablename__ = "role_grants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # address of the component the role applies to
    scope: Mapped[str] = mapped_column(String(42), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    account: Mapped[str] = mapped_column(String(42), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    granted_by: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("scope", "role", "account", name="uq_role_grants_scope_role_account"),
        Index("ix_role_grants_account", "account"),
    )
