from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from nftmarket.schemas.primitives import Address, PositiveInt


class GrantLicenseRequest(BaseModel):
    collection: Address
    token_id: PositiveInt
    term_length_units: PositiveInt
    licensee: Address


class LicenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    license_contract: str
    collection: str
    token_id: int
    licensee: str
    grantor: str
    term_units: int
    term_start: int
    term_end: int
    created_at: Optional[datetime] = None


class IsLicensedOut(BaseModel):
    collection: str
    token_id: int
    account: str
    is_licensed: bool
