# nftmarket/api/v1/marketplace.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from nftmarket.core.auth_deps import get_current_principal
from nftmarket.core.clock import Clock, get_clock
from nftmarket.core.deps_idempotency import idempotency_guard
from nftmarket.core.errors import MarketplaceError, to_http_exception
from nftmarket.db.session import get_db
from nftmarket.models.enums import TERMINAL_STATES, ListingState, SaleMode
from nftmarket.models.listing import Listing
from nftmarket.policies.rbac import Principal
from nftmarket.schemas.listings import (
    BidOut,
    BidRequest,
    BuyRequest,
    DutchAuctionRequest,
    EnglishAuctionRequest,
    FixedSaleRequest,
    ListingOut,
    PriceOut,
    SaleOut,
)
from nftmarket.services.audit_service import AuditAction, audit_event
from nftmarket.services.idempotency_service import IdempotencyService
from nftmarket.services.listing_service import ListingService
from nftmarket.services.sale_engine import SaleEngine
from nftmarket.services.settlement_service import SettlementService

router = APIRouter(prefix="/marketplace/{marketplace}")


# ---------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------


def _listing_out(listing: Listing, now: int) -> ListingOut:
    out = ListingOut.model_validate(listing)
    out.effective_state = ListingService.effective_state(listing, now)
    if out.effective_state not in TERMINAL_STATES:
        out.current_price = ListingService.unit_price(listing, now)
    return out


def _listing_in(db: Session, marketplace: str, listing_id: int) -> Listing:
    try:
        listing = ListingService().get_listing(db, listing_id)
    except MarketplaceError as e:
        raise to_http_exception(e)
    if listing.marketplace != marketplace:
        raise HTTPException(status_code=404, detail="Listing not found in this marketplace.")
    return listing


def _audit(
    db: Session,
    request: Request,
    principal: Principal,
    marketplace: str,
    action: str,
    listing_id: int,
    **summary,
) -> None:
    audit_event(
        db,
        request=request,
        actor=principal.address,
        scope=marketplace,
        action=action,
        payload_summary={"listing_id": listing_id, **summary},
        ref_id=str(listing_id),
    )


def _replay(request: Request) -> Optional[JSONResponse]:
    replay_json = getattr(request.state, "idempotency_replay_json", None)
    if replay_json is None:
        return None
    return JSONResponse(content=replay_json, status_code=request.state.idempotency_replay_status)


def _remember(db: Session, request: Request, principal: Principal, body: dict, status: int) -> None:
    if not getattr(request.state, "idempotency_key", None):
        return
    IdempotencyService().store_response(
        db,
        account=principal.address,
        endpoint_key=request.state.idempotency_endpoint_key,
        idem_key=request.state.idempotency_key,
        request_hash=request.state.idempotency_request_hash,
        response_json=body,
        response_status=status,
    )


# ---------------------------------------------------------------------
# listing store
# ---------------------------------------------------------------------


@router.post("/listings/fixed", response_model=ListingOut, status_code=201)
def add_asset_for_fixed_sale(
    request: Request,
    marketplace: str,
    req: FixedSaleRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    try:
        listing = ListingService(clock).add_asset_for_fixed_sale(
            db,
            marketplace=marketplace,
            caller=principal.address,
            asset=req.asset.to_input(),
            is_auction=req.is_auction,
            uri=req.uri,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = _listing_out(listing, clock())
    _audit(db, request, principal, marketplace, AuditAction.LISTING_ADDED, out.id, sale_mode=out.sale_mode.value)
    return out


@router.post("/listings/dutch", response_model=ListingOut, status_code=201)
def add_asset_for_dutch_auction(
    request: Request,
    marketplace: str,
    req: DutchAuctionRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    try:
        listing = ListingService(clock).add_asset_for_dutch_auction(
            db,
            marketplace=marketplace,
            caller=principal.address,
            asset=req.asset.to_input(),
            dutch=req.dutch.to_terms(),
            is_auction=req.is_auction,
            uri=req.uri,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = _listing_out(listing, clock())
    _audit(db, request, principal, marketplace, AuditAction.LISTING_ADDED, out.id, sale_mode=out.sale_mode.value)
    return out


@router.post("/listings/english", response_model=ListingOut, status_code=201)
def add_asset_for_english_auction(
    request: Request,
    marketplace: str,
    req: EnglishAuctionRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    try:
        listing = ListingService(clock).add_asset_for_english_auction(
            db,
            marketplace=marketplace,
            caller=principal.address,
            asset=req.asset.to_input(),
            reserve_price=req.reserve_price,
            duration=req.duration,
            is_auction=req.is_auction,
            uri=req.uri,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = _listing_out(listing, clock())
    _audit(db, request, principal, marketplace, AuditAction.LISTING_ADDED, out.id, sale_mode=out.sale_mode.value)
    return out


@router.get("/listings", response_model=List[ListingOut])
def list_listings(
    marketplace: str,
    state: Optional[ListingState] = Query(default=None),
    sale_mode: Optional[SaleMode] = Query(default=None),
    seller: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    now = clock()
    rows = ListingService(clock).list_listings(
        db, marketplace=marketplace, state=state, sale_mode=sale_mode, seller=seller
    )
    return [_listing_out(r, now) for r in rows]


@router.get("/listings/{listing_id}", response_model=ListingOut)
def get_listing(
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return _listing_out(_listing_in(db, marketplace, listing_id), clock())


@router.get("/listings/{listing_id}/price", response_model=PriceOut)
def current_price(
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    now = clock()
    listing = _listing_in(db, marketplace, listing_id)
    return PriceOut(
        listing_id=listing.id,
        at=now,
        unit_price=ListingService.unit_price(listing, now),
        total_price=ListingService.total_price(listing, now),
    )


@router.get("/listings/{listing_id}/bids", response_model=List[BidOut])
def list_bids(marketplace: str, listing_id: int, db: Session = Depends(get_db)):
    return _listing_in(db, marketplace, listing_id).bids


@router.get("/listings/{listing_id}/sale", response_model=SaleOut)
def get_sale(marketplace: str, listing_id: int, db: Session = Depends(get_db)):
    _listing_in(db, marketplace, listing_id)
    sale = SettlementService().get_sale(db, listing_id=listing_id)
    if sale is None:
        raise HTTPException(status_code=404, detail="Listing is not settled.")
    return sale


# ---------------------------------------------------------------------
# sale engine
# ---------------------------------------------------------------------


@router.post("/listings/{listing_id}/buy", response_model=SaleOut)
def buy(
    request: Request,
    marketplace: str,
    listing_id: int,
    req: BuyRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
    _idem: Optional[str] = Depends(idempotency_guard),
):
    replay = _replay(request)
    if replay is not None:
        return replay

    _listing_in(db, marketplace, listing_id)
    try:
        sale = SaleEngine(clock).buy(
            db,
            listing_id=listing_id,
            buyer=principal.address,
            use_escrow_balance=req.use_escrow_balance,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    body = SaleOut.model_validate(sale).model_dump(mode="json")
    _remember(db, request, principal, body, 200)
    _audit(db, request, principal, marketplace, AuditAction.LISTING_BOUGHT, listing_id, final_price=body["final_price"])
    return body


@router.post("/listings/{listing_id}/bid", response_model=BidOut)
def bid(
    request: Request,
    marketplace: str,
    listing_id: int,
    req: BidRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
    _idem: Optional[str] = Depends(idempotency_guard),
):
    replay = _replay(request)
    if replay is not None:
        return replay

    _listing_in(db, marketplace, listing_id)
    try:
        row = SaleEngine(clock).bid(
            db,
            listing_id=listing_id,
            bidder=principal.address,
            amount=req.amount,
            use_escrow_balance=req.use_escrow_balance,
        )
    except MarketplaceError as e:
        raise to_http_exception(e)

    body = BidOut.model_validate(row).model_dump(mode="json")
    _remember(db, request, principal, body, 200)
    # bid amounts stay out of the audit summary
    _audit(db, request, principal, marketplace, AuditAction.BID_PLACED, listing_id)
    return body


def _lifecycle_action(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session,
    clock: Clock,
    principal: Principal,
    *,
    op: str,
    action: str,
) -> ListingOut:
    _listing_in(db, marketplace, listing_id)
    engine = SaleEngine(clock)
    try:
        listing = getattr(engine, op)(db, listing_id=listing_id, caller=principal.address)
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = _listing_out(listing, clock())
    _audit(db, request, principal, marketplace, action, listing_id, state=out.state.value)
    return out


@router.post("/listings/{listing_id}/start", response_model=ListingOut)
def start_auction(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    return _lifecycle_action(
        request, marketplace, listing_id, db, clock, principal,
        op="start_auction", action=AuditAction.AUCTION_STARTED,
    )


@router.post("/listings/{listing_id}/end", response_model=ListingOut)
def end_auction(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    return _lifecycle_action(
        request, marketplace, listing_id, db, clock, principal,
        op="end_auction", action=AuditAction.AUCTION_ENDED,
    )


@router.post("/listings/{listing_id}/pause", response_model=ListingOut)
def pause_sale(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    return _lifecycle_action(
        request, marketplace, listing_id, db, clock, principal,
        op="pause_sale", action=AuditAction.SALE_PAUSED,
    )


@router.post("/listings/{listing_id}/unpause", response_model=ListingOut)
def unpause_sale(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    return _lifecycle_action(
        request, marketplace, listing_id, db, clock, principal,
        op="unpause_sale", action=AuditAction.SALE_UNPAUSED,
    )


@router.post("/listings/{listing_id}/cancel", response_model=ListingOut)
def cancel_sale(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    return _lifecycle_action(
        request, marketplace, listing_id, db, clock, principal,
        op="cancel_sale", action=AuditAction.SALE_CANCELLED,
    )


@router.post("/listings/{listing_id}/expire", response_model=ListingOut)
def expire_listing(
    request: Request,
    marketplace: str,
    listing_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(get_current_principal),
):
    _listing_in(db, marketplace, listing_id)
    try:
        listing = SaleEngine(clock).expire_listing(db, listing_id=listing_id)
    except MarketplaceError as e:
        raise to_http_exception(e)

    out = _listing_out(listing, clock())
    _audit(db, request, principal, marketplace, AuditAction.LISTING_EXPIRED, listing_id)
    return out
