from __future__ import annotations

from pydantic import BaseModel

from nftmarket.schemas.primitives import Address, TokenAmount


class FundsApproveRequest(BaseModel):
    spender: Address
    amount: TokenAmount


class FundsTransferRequest(BaseModel):
    to: Address
    amount: TokenAmount


class FundsBalanceOut(BaseModel):
    token: str
    account: str
    balance: TokenAmount


class FundsAllowanceOut(BaseModel):
    token: str
    owner: str
    spender: str
    allowance: TokenAmount
