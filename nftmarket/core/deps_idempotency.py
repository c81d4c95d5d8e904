# nftmarket/core/deps_idempotency.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.db.session import get_db
from nftmarket.policies.rbac import Principal
from nftmarket.services.idempotency_service import IdempotencyService


async def optional_idempotency_key(request: Request) -> Optional[str]:
    key = request.headers.get("Idempotency-Key")
    if key and len(key) > 128:
        raise HTTPException(status_code=400, detail="Idempotency-Key too long.")
    return key


async def idempotency_guard(
    request: Request,
    idem_key: Optional[str] = Depends(optional_idempotency_key),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Optional[str]:
    """
    Use on buy/bid endpoints. Without an Idempotency-Key header the request
    runs normally.

    Stores in request.state:
      - idempotency_endpoint_key
      - idempotency_key
      - idempotency_request_hash
      - idempotency_replay_json (optional)
      - idempotency_replay_status (optional)
    """
    request.state.idempotency_key = idem_key
    request.state.idempotency_replay_json = None
    request.state.idempotency_replay_status = None
    if not idem_key:
        return None

    endpoint_key = f"{request.method}:{request.url.path}"

    # Read JSON body once and cache it
    try:
        payload = await request.json()
    except Exception:
        payload = {}

    try:
        replay_json, replay_status, req_hash = IdempotencyService().reserve_or_replay(
            db,
            account=principal.address,
            endpoint_key=endpoint_key,
            idem_key=idem_key,
            request_payload=payload if isinstance(payload, dict) else {"_": payload},
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    request.state.idempotency_endpoint_key = endpoint_key
    request.state.idempotency_request_hash = req_hash
    request.state.idempotency_replay_json = replay_json
    request.state.idempotency_replay_status = replay_status

    return idem_key
