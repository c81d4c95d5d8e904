# nftmarket/services/sale_engine.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from nftmarket.core.clock import Clock, now_ms
from nftmarket.core.errors import (
    AlreadySettled,
    BidTooLow,
    InvalidTransition,
    NotForSale,
    Unauthorized,
)
from nftmarket.db.session import transaction
from nftmarket.models.enums import LedgerEntryType, ListingState, Role, SaleMode
from nftmarket.models.listing import Bid, Listing
from nftmarket.models.sale import Sale
from nftmarket.policies.listing_transitions import SaleAction, transition_for
from nftmarket.services.deployment_service import DeploymentService, MarketplaceConfig
from nftmarket.services.funds_ledger import FundsLedger
from nftmarket.services.ledger_service import LedgerService
from nftmarket.services.listing_service import ListingService
from nftmarket.services.ownership_registry import OwnershipRegistry
from nftmarket.services.role_service import RoleService
from nftmarket.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


class SaleEngine:
    """
    Fixed-sale, Dutch-auction and English-auction state machines.

    Every public operation is one transaction and reads the clock once.
    Transitions are compare-and-set on (state, version): a caller that loses
    a race changes nothing and gets the error matching the winner's outcome.
    """

    def __init__(
        self,
        clock: Clock = now_ms,
        roles: Optional[RoleService] = None,
        registry: Optional[OwnershipRegistry] = None,
        funds: Optional[FundsLedger] = None,
        deployments: Optional[DeploymentService] = None,
        ledger: Optional[LedgerService] = None,
        listings: Optional[ListingService] = None,
        settlement: Optional[SettlementService] = None,
    ):
        self.clock = clock
        self.roles = roles or RoleService()
        self.registry = registry or OwnershipRegistry(self.roles)
        self.funds = funds or FundsLedger()
        self.deployments = deployments or DeploymentService(self.roles, self.funds)
        self.ledger = ledger or LedgerService()
        self.listings = listings or ListingService(clock, self.registry, self.deployments, self.ledger)
        self.settlement = settlement or SettlementService(self.registry, self.funds, self.roles, self.ledger)

    # ─────────────────────────────────────────────
    # STATE GUARD
    # ─────────────────────────────────────────────

    @staticmethod
    def _reject(listing: Listing, action: SaleAction) -> None:
        state = ListingState(listing.state)
        if state == ListingState.SOLD and action in (
            SaleAction.BUY,
            SaleAction.END_SOLD,
            SaleAction.END_UNSOLD,
        ):
            raise AlreadySettled(f"Listing {listing.id} is already sold.")
        if action in (SaleAction.BUY, SaleAction.BID):
            raise NotForSale(f"Listing {listing.id} is {state.value}.")
        raise InvalidTransition(f"Cannot {action.value} listing {listing.id} in state {state.value}.")

    def _guard(self, listing: Listing, action: SaleAction):
        tr = transition_for(SaleMode(listing.sale_mode), action)
        if tr is None:
            raise InvalidTransition(f"{action.value} is not defined for {listing.sale_mode}.")
        if ListingState(listing.state) not in tr.sources:
            self._reject(listing, action)
        return tr

    def _advance(self, db: Session, listing: Listing, action: SaleAction) -> ListingState:
        """
        Conditional UPDATE on (state, version). Zero matched rows means another
        writer moved the listing first.
        """
        tr = self._guard(listing, action)

        result = db.execute(
            update(Listing)
            .where(
                Listing.id == listing.id,
                Listing.state.in_([s.value for s in tr.sources]),
                Listing.version == listing.version,
            )
            .values(state=tr.target.value, version=Listing.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.refresh(listing)
            logger.warning(
                "transition lost race listing=%s action=%s state=%s",
                listing.id,
                action.value,
                listing.state,
            )
            if ListingState(listing.state) in tr.sources:
                raise InvalidTransition(f"Listing {listing.id} changed concurrently; retry.")
            self._reject(listing, action)

        set_committed_value(listing, "state", tr.target.value)
        set_committed_value(listing, "version", listing.version + 1)
        logger.info(
            "listing transition id=%s action=%s state=%s",
            listing.id,
            action.value,
            tr.target.value,
        )
        return tr.target

    # ─────────────────────────────────────────────
    # INTERNAL HELPERS
    # ─────────────────────────────────────────────

    def _load(self, db: Session, listing_id: int):
        listing = self.listings.get_listing(db, listing_id, for_update=True)
        market = self.deployments.get_marketplace(db, listing.marketplace)
        return listing, market

    @staticmethod
    def _require_seller(listing: Listing, caller: str) -> None:
        if caller != listing.seller:
            raise Unauthorized(f"Only the seller can manage listing {listing.id}.")

    def _collect(
        self,
        db: Session,
        market: MarketplaceConfig,
        *,
        payer: str,
        amount: int,
        use_escrow_balance: bool,
    ) -> None:
        """
        Move funds into the marketplace's escrow balance, either through the
        allowance the payer gave the marketplace or straight from the payer.
        """
        if use_escrow_balance:
            self.funds.transfer_from(
                db,
                token=market.funds_token,
                spender=market.address,
                owner=payer,
                to=market.address,
                amount=amount,
            )
        else:
            self.funds.transfer(db, token=market.funds_token, sender=payer, to=market.address, amount=amount)

    def _release(
        self,
        db: Session,
        listing: Listing,
        market: MarketplaceConfig,
        *,
        entry_type: LedgerEntryType,
        at: int,
    ) -> None:
        self.registry.transfer(
            db,
            collection=listing.token_address,
            operator=market.address,
            from_=market.address,
            to=listing.seller,
            token_id=listing.token_id,
            amount=listing.quantity,
        )
        self.ledger.append_entry(
            db,
            marketplace=market.address,
            listing_id=listing.id,
            entry_type=entry_type,
            payload={"seller": listing.seller, "quantity": listing.quantity},
            at=at,
        )

    # ─────────────────────────────────────────────
    # FIXED SALE / DUTCH AUCTION
    # ─────────────────────────────────────────────

    def buy(self, db: Session, *, listing_id: int, buyer: str, use_escrow_balance: bool = True) -> Sale:
        with transaction(db):
            now = self.clock()
            listing, market = self._load(db, listing_id)

            if listing.sale_mode == SaleMode.ENGLISH_AUCTION.value:
                raise InvalidTransition("English auctions settle through end_auction.")
            self._guard(listing, SaleAction.BUY)

            if buyer == listing.seller:
                raise InvalidTransition("Seller cannot buy their own listing.")
            if listing.sale_mode == SaleMode.DUTCH_AUCTION.value:
                if now < listing.start_at:
                    raise NotForSale(f"Dutch auction {listing.id} has not started.")
                if now > listing.expires_at:
                    raise NotForSale(f"Dutch auction {listing.id} has expired.")

            price = self.listings.total_price(listing, now)

            self._advance(db, listing, SaleAction.BUY)
            self._collect(db, market, payer=buyer, amount=price, use_escrow_balance=use_escrow_balance)
            return self.settlement.settle(
                db,
                listing=listing,
                market=market,
                buyer=buyer,
                final_price=price,
                at=now,
            )

    def expire_listing(self, db: Session, *, listing_id: int) -> Listing:
        with transaction(db):
            now = self.clock()
            listing, market = self._load(db, listing_id)
            self._guard(listing, SaleAction.EXPIRE)

            if now <= listing.expires_at:
                raise InvalidTransition(f"Dutch auction {listing.id} has not expired yet.")

            self._advance(db, listing, SaleAction.EXPIRE)
            self._release(db, listing, market, entry_type=LedgerEntryType.LISTING_EXPIRED, at=now)
            return listing

    # ─────────────────────────────────────────────
    # ENGLISH AUCTION
    # ─────────────────────────────────────────────

    def start_auction(self, db: Session, *, listing_id: int, caller: str) -> Listing:
        with transaction(db):
            now = self.clock()
            listing, _ = self._load(db, listing_id)
            self._require_seller(listing, caller)

            self._advance(db, listing, SaleAction.START)
            listing.auction_end = now + listing.duration
            db.flush()
            return listing

    def bid(
        self,
        db: Session,
        *,
        listing_id: int,
        bidder: str,
        amount: int,
        use_escrow_balance: bool = True,
    ) -> Bid:
        with transaction(db):
            now = self.clock()
            listing, market = self._load(db, listing_id)
            self._guard(listing, SaleAction.BID)

            if now >= listing.auction_end:
                raise NotForSale(f"Auction {listing.id} has ended.")
            if bidder == listing.seller:
                raise InvalidTransition("Seller cannot bid on their own auction.")

            if listing.highest_bid is None:
                if amount < listing.reserve_price:
                    raise BidTooLow(f"First bid must be at least the reserve {listing.reserve_price}.")
            elif amount <= listing.highest_bid:
                raise BidTooLow(f"Bid must exceed the current highest bid {listing.highest_bid}.")

            prev_bidder, prev_amount = listing.highest_bidder, listing.highest_bid

            self._advance(db, listing, SaleAction.BID)

            if prev_bidder is not None:
                self.funds.transfer(
                    db, token=market.funds_token, sender=market.address, to=prev_bidder, amount=prev_amount
                )
                for row in listing.bids:
                    if not row.refunded:
                        row.refunded = True
                        row.refunded_at = now
                self.ledger.append_entry(
                    db,
                    marketplace=market.address,
                    listing_id=listing.id,
                    entry_type=LedgerEntryType.BID_REFUNDED,
                    payload={"bidder": prev_bidder, "amount": str(prev_amount)},
                    at=now,
                )

            self._collect(db, market, payer=bidder, amount=amount, use_escrow_balance=use_escrow_balance)

            row = Bid(listing_id=listing.id, bidder=bidder, amount=amount, placed_at=now)
            listing.bids.append(row)
            listing.highest_bid = amount
            listing.highest_bidder = bidder
            db.flush()

            logger.info("bid accepted listing=%s bidder=%s amount=%s", listing.id, bidder, amount)
            return row

    def end_auction(self, db: Session, *, listing_id: int, caller: str) -> Listing:
        with transaction(db):
            now = self.clock()
            listing, market = self._load(db, listing_id)
            action = SaleAction.END_SOLD if listing.highest_bidder is not None else SaleAction.END_UNSOLD
            self._guard(listing, action)

            if now < listing.auction_end and not self.roles.has_role(
                db, scope=market.address, role=Role.GOVERNOR, account=caller
            ):
                raise Unauthorized("Only a governor can end an auction before its end time.")

            self._advance(db, listing, action)
            if action == SaleAction.END_SOLD:
                self.settlement.settle(
                    db,
                    listing=listing,
                    market=market,
                    buyer=listing.highest_bidder,
                    final_price=listing.highest_bid,
                    at=now,
                )
            else:
                self._release(db, listing, market, entry_type=LedgerEntryType.LISTING_CANCELLED, at=now)
            return listing

    # ─────────────────────────────────────────────
    # PAUSE / CANCEL
    # ─────────────────────────────────────────────

    def pause_sale(self, db: Session, *, listing_id: int, caller: str) -> Listing:
        with transaction(db):
            listing, _ = self._load(db, listing_id)
            self._require_seller(listing, caller)
            self._advance(db, listing, SaleAction.PAUSE)
            return listing

    def unpause_sale(self, db: Session, *, listing_id: int, caller: str) -> Listing:
        with transaction(db):
            listing, _ = self._load(db, listing_id)
            self._require_seller(listing, caller)
            self._advance(db, listing, SaleAction.UNPAUSE)
            return listing

    def cancel_sale(self, db: Session, *, listing_id: int, caller: str) -> Listing:
        with transaction(db):
            now = self.clock()
            listing, market = self._load(db, listing_id)
            self._require_seller(listing, caller)
            self._guard(listing, SaleAction.CANCEL)

            if listing.sale_mode == SaleMode.DUTCH_AUCTION.value and now >= listing.start_at:
                raise InvalidTransition(f"Dutch auction {listing.id} can only be cancelled before it starts.")

            self._advance(db, listing, SaleAction.CANCEL)
            self._release(db, listing, market, entry_type=LedgerEntryType.LISTING_CANCELLED, at=now)
            return listing
