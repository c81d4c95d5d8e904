# nftmarket/models/account.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Boolean, Uuid, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class Account(Base):
    """
    API login for an address. Authorization is never derived from this
    row; roles live in the role registry.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    address: Mapped[str] = mapped_column(String(42), nullable=False)
    display_name: Mapped[str] = mapped_column(String(256), nullable=False)

    # 🔐 AUTH
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_accounts_username"),
        UniqueConstraint("address", name="uq_accounts_address"),
    )
