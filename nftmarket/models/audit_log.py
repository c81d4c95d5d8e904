from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from nftmarket.db.base import Base


class AuditLogRecord(Base):
    """
    Audit trail of mutating API calls.
    - Append-only (never UPDATE)
    - Stores request-id, actor, action, payload hash, and a payload summary.
    """
    __tablename__ = "audit_log_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Correlation
    request_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    route: Mapped[str] = mapped_column(String(256), nullable=False)
    method: Mapped[str] = mapped_column(String(16), nullable=False)

    actor: Mapped[str] = mapped_column(String(42), nullable=False)

    # component the action targeted (marketplace, collection, license book...)
    scope: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    # What happened
    action: Mapped[str] = mapped_column(String(96), nullable=False)  # e.g., LISTING_BOUGHT
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ok")

    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_summary_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Optional result reference ids
    ref_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("ix_audit_scope", "scope"),
        Index("ix_audit_action", "action"),
        Index("ix_audit_created", "created_at"),
    )
