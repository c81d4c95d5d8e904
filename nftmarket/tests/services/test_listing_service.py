import pytest

from nftmarket.core.errors import InvalidAsset, NotFound, Unauthorized
from nftmarket.db.session import transaction
from nftmarket.models.enums import AssetType, LedgerEntryType, ListingState, SaleMode
from nftmarket.policies.listing_policies import AssetInput, DutchTerms
from nftmarket.services.listing_service import ListingService
from nftmarket.tests.helpers import BUYER, PRICE, STAKEHOLDER_A, T0, URI, USER


def test_fixed_listing_takes_custody(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    listing = svc.add_asset_for_fixed_sale(
        db, marketplace=stack.marketplace, caller=USER, asset=stack.single_asset(token_id), uri="ipfs://listing"
    )

    assert listing.id is not None
    assert listing.state == ListingState.LISTED.value
    assert listing.sale_mode == SaleMode.FIXED_SALE.value
    assert listing.version == 1
    assert listing.listing_uri == "ipfs://listing"
    assert stack.owner_of(token_id) == stack.marketplace

    entries = svc.ledger.list_entries(db, marketplace=stack.marketplace, listing_id=listing.id)
    assert [e.entry_type for e in entries] == [LedgerEntryType.LISTING_CREATED.value]


def test_multi_edition_listing_escrows_quantity(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_multi(USER, amount=10)
    asset = AssetInput(
        asset_type=AssetType.MULTI_EDITION,
        seller=USER,
        creator=USER,
        token_address=stack.multi_nft,
        token_id=token_id,
        quantity=4,
        price=1000,
        uri=URI,
    )

    listing = svc.add_asset_for_fixed_sale(db, marketplace=stack.marketplace, caller=USER, asset=asset)

    held = stack.registry.balance_of(db, collection=stack.multi_nft, token_id=token_id, owner=USER)
    escrowed = stack.registry.balance_of(db, collection=stack.multi_nft, token_id=token_id, owner=stack.marketplace)
    assert (held, escrowed) == (6, 4)
    assert ListingService.total_price(listing, clock()) == 4000


def test_only_seller_can_list(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    with pytest.raises(Unauthorized):
        svc.add_asset_for_fixed_sale(db, marketplace=stack.marketplace, caller=BUYER, asset=stack.single_asset(token_id))
    assert stack.owner_of(token_id) == USER


def test_listing_rejects_unowned_or_unapproved_assets(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    # token the seller does not hold
    with pytest.raises(InvalidAsset):
        svc.add_asset_for_fixed_sale(
            db, marketplace=stack.marketplace, caller=BUYER, asset=stack.single_asset(token_id, seller=BUYER)
        )

    # token that does not exist
    with pytest.raises(InvalidAsset):
        svc.add_asset_for_fixed_sale(
            db, marketplace=stack.marketplace, caller=USER, asset=stack.single_asset(token_id + 1)
        )

    # collection that does not match the asset type
    wrong = AssetInput(
        asset_type=AssetType.SINGLE_EDITION,
        seller=USER,
        creator=USER,
        token_address=stack.multi_nft,
        token_id=token_id,
        quantity=1,
        price=PRICE,
    )
    with pytest.raises(InvalidAsset):
        svc.add_asset_for_fixed_sale(db, marketplace=stack.marketplace, caller=USER, asset=wrong)

    with transaction(db):
        stack.registry.set_approval_for_all(
            db, collection=stack.single_nft, owner=USER, operator=stack.marketplace, approved=False
        )
    with pytest.raises(InvalidAsset):
        svc.add_asset_for_fixed_sale(db, marketplace=stack.marketplace, caller=USER, asset=stack.single_asset(token_id))

    assert stack.owner_of(token_id) == USER
    assert svc.list_listings(db, marketplace=stack.marketplace) == []


def test_listing_rejects_bad_royalties(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    with pytest.raises(InvalidAsset):
        svc.add_asset_for_fixed_sale(
            db,
            marketplace=stack.marketplace,
            caller=USER,
            asset=stack.single_asset(token_id, stakeholders=[STAKEHOLDER_A], royalty_split=[10001]),
        )


def test_unknown_marketplace(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    with pytest.raises(NotFound):
        svc.add_asset_for_fixed_sale(db, marketplace=stack.weth, caller=USER, asset=stack.single_asset(token_id))
    with pytest.raises(NotFound):
        svc.get_listing(db, 404)


def test_dutch_and_english_terms_are_stored(db, stack, clock):
    svc = ListingService(clock)
    dutch_token = stack.mint_single(USER)
    english_token = stack.mint_single(USER)

    dutch = svc.add_asset_for_dutch_auction(
        db,
        marketplace=stack.marketplace,
        caller=USER,
        asset=stack.single_asset(dutch_token, price=PRICE - 224519000),
        dutch=DutchTerms(starting_price=PRICE, start_at=T0, expires_at=T0 + 224519000, discount_rate=1),
    )
    english = svc.add_asset_for_english_auction(
        db,
        marketplace=stack.marketplace,
        caller=USER,
        asset=stack.single_asset(english_token),
        reserve_price=PRICE,
        duration=60_000,
    )

    assert (dutch.starting_price, dutch.discount_rate, dutch.is_auction) == (PRICE, 1, True)
    assert (english.reserve_price, english.duration, english.auction_end) == (PRICE, 60_000, None)

    by_mode = svc.list_listings(db, marketplace=stack.marketplace, sale_mode=SaleMode.ENGLISH_AUCTION)
    assert [r.id for r in by_mode] == [english.id]
    assert len(svc.list_listings(db, marketplace=stack.marketplace, seller=USER)) == 2
    assert svc.list_listings(db, marketplace=stack.marketplace, seller=BUYER) == []


def test_invalid_dutch_terms_leave_asset_with_seller(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)

    with pytest.raises(InvalidAsset):
        svc.add_asset_for_dutch_auction(
            db,
            marketplace=stack.marketplace,
            caller=USER,
            asset=stack.single_asset(token_id),
            dutch=DutchTerms(starting_price=PRICE - 1, start_at=T0, expires_at=T0 + 1000, discount_rate=1),
        )
    with pytest.raises(InvalidAsset):
        svc.add_asset_for_english_auction(
            db,
            marketplace=stack.marketplace,
            caller=USER,
            asset=stack.single_asset(token_id),
            reserve_price=PRICE,
            duration=0,
        )
    assert stack.owner_of(token_id) == USER


def test_effective_state_of_dutch_listing(db, stack, clock):
    svc = ListingService(clock)
    token_id = stack.mint_single(USER)
    listing = svc.add_asset_for_dutch_auction(
        db,
        marketplace=stack.marketplace,
        caller=USER,
        asset=stack.single_asset(token_id, price=1000),
        dutch=DutchTerms(starting_price=2000, start_at=T0 + 100, expires_at=T0 + 200, discount_rate=1),
    )

    assert ListingService.effective_state(listing, T0) == ListingState.LISTED
    assert ListingService.effective_state(listing, T0 + 100) == ListingState.ACTIVE
    assert ListingService.effective_state(listing, T0 + 200) == ListingState.ACTIVE
    assert ListingService.effective_state(listing, T0 + 201) == ListingState.EXPIRED
    assert listing.state == ListingState.LISTED.value
