# nftmarket/models/listing.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nftmarket.db.base import Base
from nftmarket.db.types import TokenAmount
from nftmarket.models.enums import ListingState


class Listing(Base):
    """
    One asset offered through a marketplace.

    `state` is the single-writer guard: every transition is a conditional
    UPDATE on (state, version), so at most one concurrent caller wins.
    """

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    marketplace: Mapped[str] = mapped_column(String(42), nullable=False)

    asset_type: Mapped[int] = mapped_column(Integer, nullable=False)
    seller: Mapped[str] = mapped_column(String(42), nullable=False)
    creator: Mapped[str] = mapped_column(String(42), nullable=False)
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # unit price; floor for Dutch auctions
    price: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False, default="")

    stakeholders: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    # basis points, aligned with stakeholders
    royalty_split: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)

    is_auction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    listing_uri: Mapped[str] = mapped_column(Text, nullable=False, default="")

    sale_mode: Mapped[str] = mapped_column(String(32), nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=ListingState.LISTED.value)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Dutch auction
    starting_price: Mapped[Optional[int]] = mapped_column(TokenAmount, nullable=True)
    start_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    expires_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    discount_rate: Mapped[Optional[int]] = mapped_column(TokenAmount, nullable=True)

    # English auction
    reserve_price: Mapped[Optional[int]] = mapped_column(TokenAmount, nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    highest_bid: Mapped[Optional[int]] = mapped_column(TokenAmount, nullable=True)
    highest_bidder: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)
    auction_end: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    bids = relationship(
        "Bid", back_populates="listing", cascade="all, delete-orphan", order_by="Bid.placed_at"
    )
    sale = relationship("Sale", back_populates="listing", uselist=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_listings_quantity_positive"),
        Index("ix_listings_marketplace_state", "marketplace", "state"),
        Index("ix_listings_seller", "seller"),
        Index("ix_listings_token", "token_address", "token_id"),
    )


class Bid(Base):
    """
    Accepted English-auction bid. Funds sit in marketplace escrow until the
    bid is outbid (refunded) or the auction settles.
    """

    __tablename__ = "bids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    bidder: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    placed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    refunded_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    listing = relationship("Listing", back_populates="bids")

    __table_args__ = (
        Index("ix_bids_listing", "listing_id"),
    )
