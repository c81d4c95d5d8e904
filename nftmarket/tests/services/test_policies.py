import pytest

from nftmarket.core.errors import InvalidAsset
from nftmarket.models.enums import AssetType, ListingState, PayoutRole, SaleMode
from nftmarket.policies.listing_policies import (
    AssetInput,
    DutchTerms,
    validate_asset,
    validate_dutch_terms,
    validate_english_terms,
)
from nftmarket.policies.listing_transitions import ALLOWED_TRANSITIONS, SaleAction, reachable_states, transition_for
from nftmarket.policies.pricing import dutch_price
from nftmarket.policies.royalties import split_proceeds
from nftmarket.tests.helpers import STAKEHOLDER_A, STAKEHOLDER_B, T0, USER, addr

FLOOR = 100000000000000 - 224519000


def _asset(**overrides):
    fields = dict(
        asset_type=AssetType.SINGLE_EDITION,
        seller=USER,
        creator=USER,
        token_address=addr(99),
        token_id=1,
        quantity=1,
        price=100000000000000,
    )
    fields.update(overrides)
    return AssetInput(**fields)


# ---------------------------------------------------------------------
# transitions
# ---------------------------------------------------------------------


def test_every_transition_target_is_reachable():
    for mode in SaleMode:
        reachable = reachable_states(mode)
        for tr in ALLOWED_TRANSITIONS[mode].values():
            assert tr.target in reachable


def test_terminal_states_have_no_outgoing_edges():
    terminal = {ListingState.SOLD, ListingState.CANCELLED, ListingState.EXPIRED}
    for mode in SaleMode:
        for tr in ALLOWED_TRANSITIONS[mode].values():
            assert not (tr.sources & terminal)


def test_mode_specific_states():
    assert reachable_states(SaleMode.FIXED_SALE) == {
        ListingState.LISTED,
        ListingState.PAUSED,
        ListingState.SOLD,
        ListingState.CANCELLED,
    }
    assert ListingState.EXPIRED in reachable_states(SaleMode.DUTCH_AUCTION)
    assert ListingState.PAUSED not in reachable_states(SaleMode.DUTCH_AUCTION)
    assert ListingState.ACTIVE in reachable_states(SaleMode.ENGLISH_AUCTION)


def test_english_auctions_have_no_buy_edge():
    assert transition_for(SaleMode.ENGLISH_AUCTION, SaleAction.BUY) is None
    assert transition_for(SaleMode.FIXED_SALE, SaleAction.BID) is None


# ---------------------------------------------------------------------
# dutch pricing
# ---------------------------------------------------------------------


def test_dutch_price_at_start_and_at_expiry():
    kwargs = dict(starting_price=100000000000000, floor=FLOOR, discount_rate=1, start_at=T0)
    assert dutch_price(now=T0, **kwargs) == 100000000000000
    assert dutch_price(now=T0 + 224519000, **kwargs) == FLOOR


def test_dutch_price_is_non_increasing_and_floored():
    kwargs = dict(starting_price=5000, floor=1000, discount_rate=7, start_at=T0)
    prices = [dutch_price(now=T0 + step * 97, **kwargs) for step in range(-3, 20)]
    assert prices == sorted(prices, reverse=True)
    assert min(prices) == 1000
    assert prices[0] == 5000


# ---------------------------------------------------------------------
# royalties
# ---------------------------------------------------------------------


def test_split_rounds_stakeholders_down_and_seller_takes_residual():
    shares = split_proceeds(
        999999,
        seller=USER,
        stakeholders=[STAKEHOLDER_A, STAKEHOLDER_B],
        royalty_split=[250, 1000],
    )
    assert [(s.recipient, s.role, s.amount) for s in shares] == [
        (STAKEHOLDER_A, PayoutRole.STAKEHOLDER, 24999),
        (STAKEHOLDER_B, PayoutRole.STAKEHOLDER, 99999),
        (USER, PayoutRole.SELLER, 875001),
    ]
    assert sum(s.amount for s in shares) == 999999


def test_split_without_stakeholders_pays_seller_everything():
    shares = split_proceeds(100000000000000, seller=USER, stakeholders=[], royalty_split=[])
    assert len(shares) == 1
    assert shares[0].amount == 100000000000000


@pytest.mark.parametrize("price", [1, 7, 9999, 10001, 123456789, 2**200 + 3])
def test_split_never_leaks(price):
    shares = split_proceeds(
        price,
        seller=USER,
        stakeholders=[STAKEHOLDER_A, STAKEHOLDER_B, addr(7)],
        royalty_split=[3333, 3333, 3333],
    )
    assert sum(s.amount for s in shares) == price
    assert all(s.amount >= 0 for s in shares)


def test_royalty_config_rejected():
    with pytest.raises(InvalidAsset):
        split_proceeds(100, seller=USER, stakeholders=[STAKEHOLDER_A], royalty_split=[])
    with pytest.raises(InvalidAsset):
        split_proceeds(100, seller=USER, stakeholders=[STAKEHOLDER_A, STAKEHOLDER_B], royalty_split=[6000, 5000])


# ---------------------------------------------------------------------
# asset validation
# ---------------------------------------------------------------------


def test_valid_asset_passes():
    validate_asset(_asset())
    validate_asset(_asset(asset_type=AssetType.MULTI_EDITION, quantity=5))


@pytest.mark.parametrize(
    "overrides",
    [
        {"asset_type": 9},
        {"quantity": 0},
        {"price": 0},
        {"token_id": 0},
        {"quantity": 2},
        {"stakeholders": [STAKEHOLDER_A], "royalty_split": [-1]},
        {"stakeholders": [STAKEHOLDER_A], "royalty_split": [10001]},
    ],
)
def test_invalid_asset_rejected(overrides):
    with pytest.raises(InvalidAsset):
        validate_asset(_asset(**overrides))


def test_dutch_terms_rejected():
    asset = _asset()
    ok = dict(starting_price=100000000000000, start_at=T0, expires_at=T0 + 1000, discount_rate=1)
    validate_dutch_terms(asset, DutchTerms(**ok))

    with pytest.raises(InvalidAsset):
        validate_dutch_terms(asset, DutchTerms(**{**ok, "starting_price": 1}))
    with pytest.raises(InvalidAsset):
        validate_dutch_terms(asset, DutchTerms(**{**ok, "expires_at": T0}))
    with pytest.raises(InvalidAsset):
        validate_dutch_terms(asset, DutchTerms(**{**ok, "discount_rate": 0}))


def test_english_terms_rejected():
    validate_english_terms(reserve_price=1, duration=1)
    with pytest.raises(InvalidAsset):
        validate_english_terms(reserve_price=0, duration=1000)
    with pytest.raises(InvalidAsset):
        validate_english_terms(reserve_price=1000, duration=0)
