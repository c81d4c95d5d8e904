# nftmarket/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nftmarket.core.security import decode_token
from nftmarket.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid
    - address and username claims are present
    """
    try:
        payload = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    address = payload.get("address")
    username = payload.get("sub")
    display_name = payload.get("display_name") or "Unknown"

    if not address or not username:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    principal = Principal(
        address=str(address),
        username=str(username),
        display_name=str(display_name),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
