from __future__ import annotations

from typing import List

from pydantic import BaseModel

from nftmarket.models.enums import Role
from nftmarket.schemas.primitives import Address


class RoleGrantRequest(BaseModel):
    role: Role
    account: Address


class RoleCheckOut(BaseModel):
    scope: str
    role: Role
    account: str
    has_role: bool


class RolesOut(BaseModel):
    scope: str
    account: str
    roles: List[Role]
