from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nftmarket.models.enums import AssetType, ListingState, SaleMode
from nftmarket.policies.listing_policies import AssetInput, DutchTerms
from nftmarket.schemas.primitives import Address, NonNegInt, PositiveInt, TimestampMs, TokenAmount


class AssetIn(BaseModel):
    """
    Asset record of an add-asset call. Shape mirrors the listing; custody
    checks (ownership, approval) happen in the listing store.
    """

    asset_type: AssetType
    seller: Address
    creator: Address
    token_address: Address
    token_id: PositiveInt
    quantity: PositiveInt
    price: TokenAmount
    uri: str = ""
    stakeholders: List[Address] = Field(default_factory=list)
    royalty_split: List[NonNegInt] = Field(default_factory=list, description="basis points")

    @model_validator(mode="after")
    def _aligned_royalties(self):
        if len(self.stakeholders) != len(self.royalty_split):
            raise ValueError("stakeholders and royalty_split must have the same length.")
        return self

    def to_input(self) -> AssetInput:
        return AssetInput(
            asset_type=self.asset_type,
            seller=self.seller,
            creator=self.creator,
            token_address=self.token_address,
            token_id=self.token_id,
            quantity=self.quantity,
            price=self.price,
            uri=self.uri,
            stakeholders=list(self.stakeholders),
            royalty_split=list(self.royalty_split),
        )


class DutchParamsIn(BaseModel):
    starting_price: TokenAmount
    start_at: TimestampMs
    expires_at: TimestampMs
    discount_rate: TokenAmount = Field(..., description="price drop per millisecond")

    def to_terms(self) -> DutchTerms:
        return DutchTerms(
            starting_price=self.starting_price,
            start_at=self.start_at,
            expires_at=self.expires_at,
            discount_rate=self.discount_rate,
        )


class FixedSaleRequest(BaseModel):
    asset: AssetIn
    is_auction: bool = False
    uri: str = ""


class DutchAuctionRequest(BaseModel):
    asset: AssetIn
    dutch: DutchParamsIn
    is_auction: bool = True
    uri: str = ""


class EnglishAuctionRequest(BaseModel):
    asset: AssetIn
    reserve_price: TokenAmount
    duration: PositiveInt = Field(..., description="milliseconds from start_auction to auction end")
    is_auction: bool = True
    uri: str = ""


class BuyRequest(BaseModel):
    use_escrow_balance: bool = Field(
        default=True, description="pay through the allowance given to the marketplace"
    )


class BidRequest(BaseModel):
    amount: TokenAmount
    use_escrow_balance: bool = True


class BidOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    listing_id: int
    bidder: str
    amount: TokenAmount
    placed_at: int
    refunded: bool
    refunded_at: Optional[int] = None


class PayoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: int
    recipient: str
    role: str
    share_bps: Optional[int] = None
    amount: TokenAmount


class SaleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    listing_id: int
    marketplace: str
    buyer: str
    seller: str
    sale_mode: SaleMode
    final_price: TokenAmount
    settled_at: int
    certificate_collection: Optional[str] = None
    certificate_token_id: Optional[int] = None
    payouts: List[PayoutOut] = Field(default_factory=list)


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    marketplace: str
    asset_type: AssetType
    seller: str
    creator: str
    token_address: str
    token_id: int
    quantity: int
    price: TokenAmount
    uri: str
    stakeholders: List[str]
    royalty_split: List[int]
    is_auction: bool
    listing_uri: str
    sale_mode: SaleMode
    state: ListingState
    version: int

    starting_price: Optional[TokenAmount] = None
    start_at: Optional[int] = None
    expires_at: Optional[int] = None
    discount_rate: Optional[TokenAmount] = None

    reserve_price: Optional[TokenAmount] = None
    duration: Optional[int] = None
    highest_bid: Optional[TokenAmount] = None
    highest_bidder: Optional[str] = None
    auction_end: Optional[int] = None

    # filled by the route from the request clock.
    # current_price is per unit for fixed sales and Dutch auctions, and
    # for the whole lot for English auctions.
    effective_state: Optional[ListingState] = None
    current_price: Optional[TokenAmount] = None


class PriceOut(BaseModel):
    listing_id: int
    at: int
    unit_price: TokenAmount
    total_price: TokenAmount
