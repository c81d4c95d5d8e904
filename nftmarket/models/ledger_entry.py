# nftmarket/models/ledger_entry.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class MarketLedgerEntry(Base):
    """
    Append-only hash-chained ledger entries, one chain per marketplace.

    entry_hash = SHA256(prev_hash + canonical(payload_json))
    """

    __tablename__ = "market_ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    marketplace: Mapped[str] = mapped_column(String(42), nullable=False)
    listing_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    seq: Mapped[int] = mapped_column(Integer, nullable=False)  # monotonic per marketplace
    entry_type: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    entry_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    payload_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("marketplace", "seq", name="uq_market_ledger_seq"),
        Index("ix_market_ledger_listing", "listing_id"),
    )
