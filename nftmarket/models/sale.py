from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nftmarket.db.base import Base
from nftmarket.db.types import TokenAmount


class Sale(Base):
    """
    Settlement record. One per listing; the unique constraint backs the
    at-most-once settlement guarantee at the storage level.
    """

    __tablename__ = "sales"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    marketplace: Mapped[str] = mapped_column(String(42), nullable=False)

    buyer: Mapped[str] = mapped_column(String(42), nullable=False)
    seller: Mapped[str] = mapped_column(String(42), nullable=False)
    sale_mode: Mapped[str] = mapped_column(String(32), nullable=False)

    final_price: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    settled_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # ownership certificate minted to the buyer
    certificate_collection: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)
    certificate_token_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    listing = relationship("Listing", back_populates="sale")
    payouts = relationship(
        "Payout", back_populates="sale", cascade="all, delete-orphan", order_by="Payout.position"
    )

    __table_args__ = (
        UniqueConstraint("listing_id", name="uq_sales_listing"),
    )


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient: Mapped[str] = mapped_column(String(42), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    share_bps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    sale = relationship("Sale", back_populates="payouts")
