# nftmarket/services/audit_service.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from nftmarket.core.hashing import payload_digest
from nftmarket.models.audit_log import AuditLogRecord


class AuditAction:
    # Deployment / roles
    COMPONENT_INITIALIZED = "COMPONENT_INITIALIZED"
    ROLE_GRANTED = "ROLE_GRANTED"
    ROLE_REVOKED = "ROLE_REVOKED"

    # Licenses
    LICENSE_GRANTED = "LICENSE_GRANTED"

    # Listings
    LISTING_ADDED = "LISTING_ADDED"
    LISTING_BOUGHT = "LISTING_BOUGHT"
    BID_PLACED = "BID_PLACED"
    AUCTION_STARTED = "AUCTION_STARTED"
    AUCTION_ENDED = "AUCTION_ENDED"
    SALE_PAUSED = "SALE_PAUSED"
    SALE_UNPAUSED = "SALE_UNPAUSED"
    SALE_CANCELLED = "SALE_CANCELLED"
    LISTING_EXPIRED = "LISTING_EXPIRED"


def audit_event(
    db: Session,
    *,
    request: Request,
    actor: str,
    scope: Optional[str],
    action: str,
    payload_summary: Dict[str, Any],
    status: str = "ok",
    ref_id: Optional[str] = None,
) -> AuditLogRecord:
    """
    Append-only audit record insert, committed on its own.

    Call after the audited operation has committed.
    """
    rid = getattr(request.state, "request_id", None) or "missing"

    row = AuditLogRecord(
        request_id=rid,
        route=str(request.url.path),
        method=request.method,
        actor=actor,
        scope=scope,
        action=action,
        status=status,
        payload_hash=payload_digest(payload_summary),
        payload_summary_json=payload_summary,
        ref_id=ref_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
