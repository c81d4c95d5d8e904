# nftmarket/models/token.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class Token(Base):
    """
    A minted token id inside a collection (single-edition, multi-edition or
    ownership certificate).
    """

    __tablename__ = "tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    collection: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)

    creator: Mapped[str] = mapped_column(String(42), nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False, default="")
    supply: Mapped[int] = mapped_column(BigInteger, nullable=False)
    data: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("collection", "token_id", name="uq_tokens_collection_token"),
        CheckConstraint("token_id >= 1", name="ck_tokens_id_positive"),
        CheckConstraint("supply >= 1", name="ck_tokens_supply_positive"),
    )


class TokenBalance(Base):
    __tablename__ = "token_balances"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    collection: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("collection", "token_id", "owner", name="uq_token_balances_holder"),
        CheckConstraint("amount >= 0", name="ck_token_balances_nonnegative"),
        Index("ix_token_balances_owner", "owner"),
    )


class OperatorApproval(Base):
    """
    setApprovalForAll: `operator` may move any of `owner`'s tokens in `collection`.
    """

    __tablename__ = "operator_approvals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    collection: Mapped[str] = mapped_column(String(42), nullable=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)
    operator: Mapped[str] = mapped_column(String(42), nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("collection", "owner", "operator", name="uq_operator_approvals"),
    )
