# nftmarket/policies/listing_policies.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from nftmarket.core.errors import InvalidAsset
from nftmarket.models.enums import AssetType
from nftmarket.policies.royalties import validate_royalty_config


@dataclass(frozen=True)
class AssetInput:
    """
    Asset record passed to every add_asset_* call.
    """

    asset_type: AssetType
    seller: str
    creator: str
    token_address: str
    token_id: int
    quantity: int
    price: int
    uri: str = ""
    stakeholders: List[str] = field(default_factory=list)
    royalty_split: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class DutchTerms:
    starting_price: int
    start_at: int
    expires_at: int
    discount_rate: int


def validate_asset(asset: AssetInput) -> None:
    """
    Shape checks only; ownership and approval need the registry.
    """
    try:
        AssetType(asset.asset_type)
    except ValueError:
        raise InvalidAsset(f"Unknown asset type {asset.asset_type}.")

    if asset.quantity < 1:
        raise InvalidAsset("Quantity must be at least 1.")
    if asset.price <= 0:
        raise InvalidAsset("Price must be positive.")
    if asset.token_id < 1:
        raise InvalidAsset("Token id must be positive.")
    if asset.asset_type != AssetType.MULTI_EDITION and asset.quantity != 1:
        raise InvalidAsset("Single-edition assets and certificates are listed one at a time.")

    validate_royalty_config(asset.stakeholders, asset.royalty_split)


def validate_dutch_terms(asset: AssetInput, terms: DutchTerms) -> None:
    if terms.starting_price < asset.price:
        raise InvalidAsset("Starting price must not be below the floor price.")
    if terms.expires_at <= terms.start_at:
        raise InvalidAsset("Auction must expire after it starts.")
    if terms.discount_rate <= 0:
        raise InvalidAsset("Discount rate must be positive.")


def validate_english_terms(*, reserve_price: int, duration: int) -> None:
    if reserve_price <= 0:
        raise InvalidAsset("Reserve price must be positive.")
    if duration <= 0:
        raise InvalidAsset("Auction duration must be positive.")
