import pytest

from nftmarket.core.errors import AlreadySettled, NotForSale
from nftmarket.models.enums import LedgerEntryType
from nftmarket.models.listing import Listing
from nftmarket.models.sale import Sale
from nftmarket.services.ledger_service import LedgerService
from nftmarket.services.sale_engine import SaleEngine
from nftmarket.tests.helpers import BIDDER, BUYER, INITIAL_BALANCE, USER


def _sold_listing(engine, stack):
    token_id = stack.mint_single(USER)
    listing = engine.listings.add_asset_for_fixed_sale(
        stack.db, marketplace=stack.marketplace, caller=USER, asset=stack.single_asset(token_id)
    )
    stack.allow(BUYER)
    engine.buy(stack.db, listing_id=listing.id, buyer=BUYER)
    return listing.id


def test_ledger_chain_links_and_verifies(db, stack, engine):
    listing_id = _sold_listing(engine, stack)
    svc = LedgerService()

    entries = svc.list_entries(db, marketplace=stack.marketplace)
    assert [e.entry_type for e in entries] == [
        LedgerEntryType.LISTING_CREATED.value,
        LedgerEntryType.SALE_SETTLED.value,
    ]
    assert [e.seq for e in entries] == [1, 2]
    assert entries[0].prev_hash == LedgerService.GENESIS_HASH
    assert entries[1].prev_hash == entries[0].entry_hash
    assert entries[1].listing_id == listing_id
    assert entries[1].payload_json["payload"]["buyer"] == BUYER

    assert svc.verify_chain(db, marketplace=stack.marketplace) is True


def test_tampered_ledger_fails_verification(db, stack, engine):
    _sold_listing(engine, stack)
    svc = LedgerService()

    first = svc.list_entries(db, marketplace=stack.marketplace)[0]
    first.payload_json = {**first.payload_json, "at": 0}
    db.commit()

    assert svc.verify_chain(db, marketplace=stack.marketplace) is False


def test_ledgers_are_per_marketplace(db, stack, engine):
    _sold_listing(engine, stack)

    assert LedgerService().list_entries(db, marketplace=stack.weth) == []
    assert LedgerService().verify_chain(db, marketplace=stack.weth) is True


def test_stale_concurrent_buy_settles_once(db, session_factory, stack, engine, clock):
    token_id = stack.mint_single(USER)
    listing = engine.listings.add_asset_for_fixed_sale(
        db, marketplace=stack.marketplace, caller=USER, asset=stack.single_asset(token_id)
    )
    listing_id = listing.id
    stack.allow(BUYER)
    stack.allow(BIDDER)

    other = session_factory()
    try:
        # second caller has already read the listing as LISTED
        assert other.get(Listing, listing_id).state == "LISTED"

        engine.buy(db, listing_id=listing_id, buyer=BUYER)

        with pytest.raises((AlreadySettled, NotForSale)):
            SaleEngine(clock=clock).buy(other, listing_id=listing_id, buyer=BIDDER)
    finally:
        other.close()

    db.expire_all()
    assert db.query(Sale).filter(Sale.listing_id == listing_id).count() == 1
    assert stack.owner_of(token_id) == BUYER
    assert stack.balance(BIDDER) == INITIAL_BALANCE
    assert stack.balance(USER) == INITIAL_BALANCE + listing.price
