from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nftmarket.schemas.primitives import Address, PositiveInt


class MintSingleRequest(BaseModel):
    to: Address
    uri: str = ""


class MintMultiRequest(BaseModel):
    to: Address
    amount: PositiveInt
    uri: str = ""
    data: Optional[str] = None


class IssueCertificateRequest(BaseModel):
    to: Address
    creator: Address
    uri: str = ""
    data: Optional[str] = None


class ApprovalRequest(BaseModel):
    operator: Address
    approved: bool = True


class TokenTransferRequest(BaseModel):
    from_: Address = Field(..., alias="from")
    to: Address
    token_id: PositiveInt
    amount: PositiveInt = 1

    model_config = ConfigDict(populate_by_name=True)


class TokenOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    collection: str
    token_id: int
    creator: str
    uri: str
    supply: int
    data: Optional[str] = None


class HolderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    owner: str
    amount: int


class TokenDetailOut(TokenOut):
    holders: List[HolderOut] = Field(default_factory=list)


class TokenBalanceOut(BaseModel):
    collection: str
    token_id: int
    owner: str
    balance: int


class ApprovalOut(BaseModel):
    collection: str
    owner: str
    operator: str
    approved: bool
