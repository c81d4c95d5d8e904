# nftmarket/policies/listing_transitions.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Set

from nftmarket.models.enums import ListingState, SaleMode

LISTED = ListingState.LISTED
PAUSED = ListingState.PAUSED
ACTIVE = ListingState.ACTIVE
SOLD = ListingState.SOLD
CANCELLED = ListingState.CANCELLED
EXPIRED = ListingState.EXPIRED


class SaleAction(str, Enum):
    BUY = "BUY"
    BID = "BID"
    PAUSE = "PAUSE"
    UNPAUSE = "UNPAUSE"
    START = "START"
    END_SOLD = "END_SOLD"
    END_UNSOLD = "END_UNSOLD"
    CANCEL = "CANCEL"
    EXPIRE = "EXPIRE"


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[ListingState]
    target: ListingState


def _t(sources: Set[ListingState], target: ListingState) -> Transition:
    return Transition(frozenset(sources), target)


# Dutch auctions never store ACTIVE: they are active implicitly once
# start_at has passed, so the stored state stays LISTED until it ends.
ALLOWED_TRANSITIONS = {
    SaleMode.FIXED_SALE: {
        SaleAction.BUY: _t({LISTED}, SOLD),
        SaleAction.PAUSE: _t({LISTED}, PAUSED),
        SaleAction.UNPAUSE: _t({PAUSED}, LISTED),
        SaleAction.CANCEL: _t({LISTED, PAUSED}, CANCELLED),
    },
    SaleMode.DUTCH_AUCTION: {
        SaleAction.BUY: _t({LISTED, ACTIVE}, SOLD),
        SaleAction.CANCEL: _t({LISTED}, CANCELLED),
        SaleAction.EXPIRE: _t({LISTED, ACTIVE}, EXPIRED),
    },
    SaleMode.ENGLISH_AUCTION: {
        SaleAction.PAUSE: _t({LISTED}, PAUSED),
        SaleAction.UNPAUSE: _t({PAUSED}, LISTED),
        SaleAction.START: _t({LISTED}, ACTIVE),
        SaleAction.BID: _t({ACTIVE}, ACTIVE),
        SaleAction.END_SOLD: _t({ACTIVE}, SOLD),
        SaleAction.END_UNSOLD: _t({ACTIVE}, CANCELLED),
        SaleAction.CANCEL: _t({LISTED, PAUSED}, CANCELLED),
    },
}


def transition_for(mode: SaleMode, action: SaleAction) -> Transition | None:
    return ALLOWED_TRANSITIONS[mode].get(action)


def reachable_states(mode: SaleMode) -> Set[ListingState]:
    """
    Every state a listing of `mode` can reach from LISTED.
    """
    seen = {LISTED}
    frontier = [LISTED]
    while frontier:
        state = frontier.pop()
        for tr in ALLOWED_TRANSITIONS[mode].values():
            if state in tr.sources and tr.target not in seen:
                seen.add(tr.target)
                frontier.append(tr.target)
    return seen
