from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from nftmarket.schemas.primitives import Address


class LoginRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8)
    display_name: str = Field(..., max_length=256)
    address: Optional[Address] = Field(default=None, description="omit to allocate a fresh address")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PrincipalOut(BaseModel):
    address: str
    username: str
    display_name: str
