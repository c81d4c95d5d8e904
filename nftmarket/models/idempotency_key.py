from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class IdempotencyKeyRecord(Base):
    """
    Stored response for a POST request sent with an Idempotency-Key header.

    Scope: (account, endpoint_key, idem_key) must be unique.
    """
    __tablename__ = "idempotency_key_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    account: Mapped[str] = mapped_column(String(42), nullable=False)

    endpoint_key: Mapped[str] = mapped_column(String(160), nullable=False)  # e.g. "POST:/v1/marketplace/0x../listings/1/buy"
    idem_key: Mapped[str] = mapped_column(String(128), nullable=False)

    request_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    response_status: Mapped[int] = mapped_column(Integer, nullable=False, default=200)
    response_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("account", "endpoint_key", "idem_key", name="uq_idem_scope"),
        Index("ix_idem_lookup", "account", "endpoint_key"),
    )
