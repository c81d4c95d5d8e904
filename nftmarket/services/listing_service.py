# nftmarket/services/listing_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.clock import Clock, now_ms
from nftmarket.core.errors import InvalidAsset, NotFound, Unauthorized
from nftmarket.db.session import transaction
from nftmarket.models.enums import (
    ASSET_TYPE_COLLECTION,
    AssetType,
    LedgerEntryType,
    ListingState,
    SaleMode,
)
from nftmarket.models.listing import Listing
from nftmarket.policies.listing_policies import (
    AssetInput,
    DutchTerms,
    validate_asset,
    validate_dutch_terms,
    validate_english_terms,
)
from nftmarket.policies.pricing import dutch_price
from nftmarket.services.deployment_service import DeploymentService, MarketplaceConfig
from nftmarket.services.ledger_service import LedgerService
from nftmarket.services.ownership_registry import OwnershipRegistry

logger = logging.getLogger(__name__)


class ListingService:
    """
    Asset listing store.

    Adding an asset moves it into marketplace custody; it stays there until
    the listing is sold, cancelled or expired.
    """

    def __init__(
        self,
        clock: Clock = now_ms,
        registry: Optional[OwnershipRegistry] = None,
        deployments: Optional[DeploymentService] = None,
        ledger: Optional[LedgerService] = None,
    ):
        self.clock = clock
        self.registry = registry or OwnershipRegistry()
        self.deployments = deployments or DeploymentService()
        self.ledger = ledger or LedgerService()

    # ─────────────────────────────────────────────
    # INTERNAL HELPERS
    # ─────────────────────────────────────────────

    def _check_custody(self, db: Session, market: MarketplaceConfig, caller: str, asset: AssetInput) -> None:
        if caller != asset.seller:
            raise Unauthorized("Only the seller can list an asset.")

        expected = market.collections()[ASSET_TYPE_COLLECTION[AssetType(asset.asset_type)]]
        if asset.token_address != expected:
            raise InvalidAsset(
                f"{asset.token_address} is not the marketplace collection for asset type {int(asset.asset_type)}."
            )

        if not self.registry.token_exists(db, collection=asset.token_address, token_id=asset.token_id):
            raise InvalidAsset(f"Token {asset.token_id} does not exist in {asset.token_address}.")

        held = self.registry.balance_of(
            db, collection=asset.token_address, token_id=asset.token_id, owner=asset.seller
        )
        if held < asset.quantity:
            raise InvalidAsset(f"Seller holds {held} of token {asset.token_id}, cannot list {asset.quantity}.")

        if not self.registry.is_approved_for_all(
            db, collection=asset.token_address, owner=asset.seller, operator=market.address
        ):
            raise InvalidAsset("Seller has not approved the marketplace for this collection.")

    def _create(
        self,
        db: Session,
        *,
        market: MarketplaceConfig,
        asset: AssetInput,
        sale_mode: SaleMode,
        is_auction: bool,
        uri: str,
        **terms,
    ) -> Listing:
        self.registry.transfer(
            db,
            collection=asset.token_address,
            operator=market.address,
            from_=asset.seller,
            to=market.address,
            token_id=asset.token_id,
            amount=asset.quantity,
        )

        listing = Listing(
            marketplace=market.address,
            asset_type=int(asset.asset_type),
            seller=asset.seller,
            creator=asset.creator,
            token_address=asset.token_address,
            token_id=asset.token_id,
            quantity=asset.quantity,
            price=asset.price,
            uri=asset.uri,
            stakeholders=list(asset.stakeholders),
            royalty_split=list(asset.royalty_split),
            is_auction=is_auction,
            listing_uri=uri,
            sale_mode=sale_mode.value,
            state=ListingState.LISTED.value,
            version=1,
            **terms,
        )
        db.add(listing)
        db.flush()

        self.ledger.append_entry(
            db,
            marketplace=market.address,
            listing_id=listing.id,
            entry_type=LedgerEntryType.LISTING_CREATED,
            payload={
                "sale_mode": sale_mode.value,
                "seller": asset.seller,
                "token_address": asset.token_address,
                "token_id": asset.token_id,
                "quantity": asset.quantity,
                "price": str(asset.price),
            },
            at=self.clock(),
        )
        logger.info(
            "listing created id=%s marketplace=%s mode=%s seller=%s token=%s/%s",
            listing.id,
            market.address,
            sale_mode.value,
            asset.seller,
            asset.token_address,
            asset.token_id,
        )
        return listing

    # ─────────────────────────────────────────────
    # ADD ASSET
    # ─────────────────────────────────────────────

    def add_asset_for_fixed_sale(
        self,
        db: Session,
        *,
        marketplace: str,
        caller: str,
        asset: AssetInput,
        is_auction: bool = False,
        uri: str = "",
    ) -> Listing:
        with transaction(db):
            validate_asset(asset)
            market = self.deployments.get_marketplace(db, marketplace)
            self._check_custody(db, market, caller, asset)
            return self._create(
                db,
                market=market,
                asset=asset,
                sale_mode=SaleMode.FIXED_SALE,
                is_auction=is_auction,
                uri=uri,
            )

    def add_asset_for_dutch_auction(
        self,
        db: Session,
        *,
        marketplace: str,
        caller: str,
        asset: AssetInput,
        dutch: DutchTerms,
        is_auction: bool = True,
        uri: str = "",
    ) -> Listing:
        with transaction(db):
            validate_asset(asset)
            validate_dutch_terms(asset, dutch)
            market = self.deployments.get_marketplace(db, marketplace)
            self._check_custody(db, market, caller, asset)
            return self._create(
                db,
                market=market,
                asset=asset,
                sale_mode=SaleMode.DUTCH_AUCTION,
                is_auction=is_auction,
                uri=uri,
                starting_price=dutch.starting_price,
                start_at=dutch.start_at,
                expires_at=dutch.expires_at,
                discount_rate=dutch.discount_rate,
            )

    def add_asset_for_english_auction(
        self,
        db: Session,
        *,
        marketplace: str,
        caller: str,
        asset: AssetInput,
        reserve_price: int,
        duration: int,
        is_auction: bool = True,
        uri: str = "",
    ) -> Listing:
        with transaction(db):
            validate_asset(asset)
            validate_english_terms(reserve_price=reserve_price, duration=duration)
            market = self.deployments.get_marketplace(db, marketplace)
            self._check_custody(db, market, caller, asset)
            return self._create(
                db,
                market=market,
                asset=asset,
                sale_mode=SaleMode.ENGLISH_AUCTION,
                is_auction=is_auction,
                uri=uri,
                reserve_price=reserve_price,
                duration=duration,
            )

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_listing(self, db: Session, listing_id: int, *, for_update: bool = False) -> Listing:
        stmt = select(Listing).where(Listing.id == listing_id)
        if for_update:
            stmt = stmt.with_for_update()
        listing = db.execute(stmt).scalar_one_or_none()
        if listing is None:
            raise NotFound(f"Listing {listing_id} not found.")
        return listing

    def list_listings(
        self,
        db: Session,
        *,
        marketplace: str,
        state: Optional[ListingState] = None,
        sale_mode: Optional[SaleMode] = None,
        seller: Optional[str] = None,
    ) -> List[Listing]:
        stmt = select(Listing).where(Listing.marketplace == marketplace)
        if state is not None:
            stmt = stmt.where(Listing.state == state.value)
        if sale_mode is not None:
            stmt = stmt.where(Listing.sale_mode == sale_mode.value)
        if seller is not None:
            stmt = stmt.where(Listing.seller == seller)
        return list(db.execute(stmt.order_by(Listing.id.asc())).scalars().all())

    # ─────────────────────────────────────────────
    # PRICING / EFFECTIVE STATE
    # ─────────────────────────────────────────────

    @staticmethod
    def unit_price(listing: Listing, now: int) -> int:
        """
        Fixed sale: the listed price. Dutch: the decayed price at `now`.
        English: the highest bid so far, else the reserve. Bids and the
        reserve cover the whole lot, so this is a lot figure, not per unit.
        """
        if listing.sale_mode == SaleMode.DUTCH_AUCTION.value:
            return dutch_price(
                starting_price=listing.starting_price,
                floor=listing.price,
                discount_rate=listing.discount_rate,
                start_at=listing.start_at,
                now=now,
            )
        if listing.sale_mode == SaleMode.ENGLISH_AUCTION.value:
            return listing.highest_bid or listing.reserve_price
        return listing.price

    @classmethod
    def total_price(cls, listing: Listing, now: int) -> int:
        if listing.sale_mode == SaleMode.ENGLISH_AUCTION.value:
            return cls.unit_price(listing, now)
        return cls.unit_price(listing, now) * listing.quantity

    def current_price(self, db: Session, *, listing_id: int) -> int:
        return self.unit_price(self.get_listing(db, listing_id), self.clock())

    @staticmethod
    def effective_state(listing: Listing, now: int) -> ListingState:
        """
        Stored state, except that a listed Dutch auction reads as ACTIVE
        inside its window and EXPIRED past it, until expire_listing runs.
        """
        state = ListingState(listing.state)
        if listing.sale_mode == SaleMode.DUTCH_AUCTION.value and state == ListingState.LISTED:
            if now > listing.expires_at:
                return ListingState.EXPIRED
            if now >= listing.start_at:
                return ListingState.ACTIVE
        return state
