# nftmarket/services/settlement_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.errors import AlreadySettled, Unauthorized
from nftmarket.models.enums import LedgerEntryType, Role
from nftmarket.models.listing import Listing
from nftmarket.models.sale import Payout, Sale
from nftmarket.policies.royalties import Share, split_proceeds
from nftmarket.services.deployment_service import MarketplaceConfig
from nftmarket.services.funds_ledger import FundsLedger
from nftmarket.services.ledger_service import LedgerService
from nftmarket.services.ownership_registry import OwnershipRegistry
from nftmarket.services.role_service import RoleService

logger = logging.getLogger(__name__)


class SettlementService:
    """
    Settlement & royalty distribution.

    Order:
      1) split final_price (stakeholders rounded down, residual to seller)
      2) asset: marketplace escrow -> buyer
      3) funds: marketplace escrow -> stakeholders, then seller
      4) ownership certificate issued to the buyer (the marketplace must be
         a GOVERNOR of the certificate collection; checked before any transfer)
      5) Sale + Payout rows, SALE_SETTLED ledger entry

    Expects final_price to already sit in the marketplace's funds balance.
    Runs inside the sale engine's transaction; never commits.
    """

    def __init__(
        self,
        registry: Optional[OwnershipRegistry] = None,
        funds: Optional[FundsLedger] = None,
        roles: Optional[RoleService] = None,
        ledger: Optional[LedgerService] = None,
    ):
        self.roles = roles or RoleService()
        self.registry = registry or OwnershipRegistry(self.roles)
        self.funds = funds or FundsLedger()
        self.ledger = ledger or LedgerService()

    def get_sale(self, db: Session, *, listing_id: int) -> Optional[Sale]:
        return db.execute(select(Sale).where(Sale.listing_id == listing_id)).scalar_one_or_none()

    def settle(
        self,
        db: Session,
        *,
        listing: Listing,
        market: MarketplaceConfig,
        buyer: str,
        final_price: int,
        at: int,
    ) -> Sale:
        if self.get_sale(db, listing_id=listing.id) is not None:
            raise AlreadySettled(f"Listing {listing.id} is already settled.")
        if not self.roles.has_role(
            db, scope=market.ownership_certificate, role=Role.GOVERNOR, account=market.address
        ):
            raise Unauthorized("Marketplace is not a governor of the ownership certificate collection.")

        shares: List[Share] = split_proceeds(
            final_price,
            seller=listing.seller,
            stakeholders=listing.stakeholders,
            royalty_split=listing.royalty_split,
        )

        self.registry.transfer(
            db,
            collection=listing.token_address,
            operator=market.address,
            from_=market.address,
            to=buyer,
            token_id=listing.token_id,
            amount=listing.quantity,
        )

        for share in shares:
            self.funds.transfer(
                db, token=market.funds_token, sender=market.address, to=share.recipient, amount=share.amount
            )

        certificate = self.registry.issue_certificate(
            db,
            collection=market.ownership_certificate,
            governor=market.address,
            to=buyer,
            creator=listing.creator,
            uri=listing.uri,
            data=f"{market.address}:{listing.id}",
        )

        sale = Sale(
            listing_id=listing.id,
            marketplace=market.address,
            buyer=buyer,
            seller=listing.seller,
            sale_mode=listing.sale_mode,
            final_price=final_price,
            settled_at=at,
            certificate_collection=market.ownership_certificate,
            certificate_token_id=certificate.token_id,
        )
        sale.payouts = [
            Payout(
                position=i,
                recipient=share.recipient,
                role=share.role.value,
                share_bps=share.share_bps,
                amount=share.amount,
            )
            for i, share in enumerate(shares)
        ]
        db.add(sale)
        db.flush()

        self.ledger.append_entry(
            db,
            marketplace=market.address,
            listing_id=listing.id,
            entry_type=LedgerEntryType.SALE_SETTLED,
            payload={
                "buyer": buyer,
                "seller": listing.seller,
                "final_price": str(final_price),
                "payouts": [
                    {"recipient": s.recipient, "role": s.role.value, "amount": str(s.amount)}
                    for s in shares
                ],
                "certificate_token_id": certificate.token_id,
            },
            at=at,
        )
        logger.info(
            "listing settled id=%s buyer=%s seller=%s final_price=%s payouts=%s",
            listing.id,
            buyer,
            listing.seller,
            final_price,
            len(shares),
            extra={"marketplace": market.address, "listing_id": listing.id},
        )
        return sale
