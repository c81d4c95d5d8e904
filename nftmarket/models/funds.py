from __future__ import annotations

import uuid

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base
from nftmarket.db.types import TokenAmount


class FundBalance(Base):
    __tablename__ = "fund_balances"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    token: Mapped[str] = mapped_column(String(42), nullable=False)
    account: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("token", "account", name="uq_fund_balances_holder"),
    )


class FundAllowance(Base):
    __tablename__ = "fund_allowances"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    token: Mapped[str] = mapped_column(String(42), nullable=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)
    spender: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("token", "owner", "spender", name="uq_fund_allowances_pair"),
    )
