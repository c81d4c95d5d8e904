# nftmarket/models/enums.py
from __future__ import annotations
from enum import Enum, IntEnum


class DeploymentKind(str, Enum):
    SINGLE_NFT = "SINGLE_NFT"
    MULTI_NFT = "MULTI_NFT"
    OWNERSHIP_CERTIFICATE = "OWNERSHIP_CERTIFICATE"
    LICENSE = "LICENSE"
    FUNDS_TOKEN = "FUNDS_TOKEN"
    MARKETPLACE = "MARKETPLACE"


class Role(str, Enum):
    ADMIN = "ADMIN"
    MINTER = "MINTER"
    GOVERNOR = "GOVERNOR"


class AssetType(IntEnum):
    SINGLE_EDITION = 1
    MULTI_EDITION = 2
    OWNERSHIP_CERTIFICATE = 3


# which collection kind backs each listable asset type
ASSET_TYPE_COLLECTION = {
    AssetType.SINGLE_EDITION: DeploymentKind.SINGLE_NFT,
    AssetType.MULTI_EDITION: DeploymentKind.MULTI_NFT,
    AssetType.OWNERSHIP_CERTIFICATE: DeploymentKind.OWNERSHIP_CERTIFICATE,
}


class SaleMode(str, Enum):
    FIXED_SALE = "FIXED_SALE"
    DUTCH_AUCTION = "DUTCH_AUCTION"
    ENGLISH_AUCTION = "ENGLISH_AUCTION"


class ListingState(str, Enum):
    LISTED = "LISTED"
    PAUSED = "PAUSED"
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


TERMINAL_STATES = {ListingState.SOLD, ListingState.CANCELLED, ListingState.EXPIRED}


class PayoutRole(str, Enum):
    STAKEHOLDER = "STAKEHOLDER"
    SELLER = "SELLER"


class LedgerEntryType(str, Enum):
    LISTING_CREATED = "LISTING_CREATED"
    SALE_SETTLED = "SALE_SETTLED"
    BID_REFUNDED = "BID_REFUNDED"
    LISTING_CANCELLED = "LISTING_CANCELLED"
    LISTING_EXPIRED = "LISTING_EXPIRED"
