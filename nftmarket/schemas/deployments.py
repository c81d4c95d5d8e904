from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nftmarket.models.enums import DeploymentKind
from nftmarket.schemas.primitives import Address, TokenAmount


class InitializeCollectionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    symbol: str = Field(..., min_length=1, max_length=32)
    uri: str = Field(default="", description="base uri (multi-edition only)")
    address: Optional[Address] = None


class InitializeComponentRequest(BaseModel):
    address: Optional[Address] = None


class InitializeFundsTokenRequest(BaseModel):
    name: str = "Wrapped Ether"
    symbol: str = "WETH"
    holders: List[Address] = Field(default_factory=list)
    initial_balance: Optional[TokenAmount] = Field(
        default=None, description="defaults to the configured mock balance"
    )
    address: Optional[Address] = None


class InitializeMarketplaceRequest(BaseModel):
    funds_token: Address
    single_nft: Address
    multi_nft: Address
    ownership_certificate: Address
    license: Address
    owner: Optional[Address] = Field(default=None, description="defaults to the caller")
    address: Optional[Address] = None


class DeploymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: str
    kind: DeploymentKind
    name: Optional[str] = None
    symbol: Optional[str] = None
    owner: str
    config_json: Dict[str, Any] = Field(default_factory=dict)
    initialized_at: Optional[datetime] = None
