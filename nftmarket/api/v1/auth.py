# nftmarket/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.security import create_access_token
from nftmarket.db.session import get_db, transaction
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.auth import LoginRequest, PrincipalOut, RegisterRequest, TokenResponse
from nftmarket.services.auth_service import authenticate, register

router = APIRouter(prefix="/auth")


def _token_for(principal: Principal) -> TokenResponse:
    token = create_access_token(
        subject=principal.username,
        claims={
            "address": principal.address,
            "display_name": principal.display_name,
        },
    )
    return TokenResponse(access_token=token)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    principal = authenticate(db, req.username, req.password)
    if not principal:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return _token_for(principal)


@router.post("/register", response_model=TokenResponse, status_code=201)
def register_account(req: RegisterRequest, db: Session = Depends(get_db)):
    try:
        with transaction(db):
            principal = register(
                db,
                username=req.username,
                password=req.password,
                display_name=req.display_name,
                address=req.address,
            )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _token_for(principal)


@router.get("/me", response_model=PrincipalOut)
def get_me(principal: Principal = Depends(get_current_principal)):
    return PrincipalOut(
        address=principal.address,
        username=principal.username,
        display_name=principal.display_name,
    )
