# nftmarket/policies/royalties.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from nftmarket.core.errors import InvalidAsset
from nftmarket.models.enums import PayoutRole

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Share:
    recipient: str
    role: PayoutRole
    amount: int
    share_bps: Optional[int] = None


def validate_royalty_config(stakeholders: Sequence[str], royalty_split: Sequence[int]) -> None:
    if len(stakeholders) != len(royalty_split):
        raise InvalidAsset("stakeholders and royaltySplit must have the same length.")
    if any(bps < 0 for bps in royalty_split):
        raise InvalidAsset("Royalty shares cannot be negative.")
    if sum(royalty_split) > BPS_DENOMINATOR:
        raise InvalidAsset(f"Royalty shares exceed {BPS_DENOMINATOR} basis points.")


def split_proceeds(
    final_price: int,
    *,
    seller: str,
    stakeholders: Sequence[str],
    royalty_split: Sequence[int],
) -> List[Share]:
    """
    Stakeholders first, in listing order, each rounded down; the seller
    takes the residual so the shares always add up to final_price.
    """
    validate_royalty_config(stakeholders, royalty_split)

    shares: List[Share] = []
    paid = 0
    for recipient, bps in zip(stakeholders, royalty_split):
        amount = final_price * bps // BPS_DENOMINATOR
        shares.append(Share(recipient=recipient, role=PayoutRole.STAKEHOLDER, amount=amount, share_bps=bps))
        paid += amount

    shares.append(Share(recipient=seller, role=PayoutRole.SELLER, amount=final_price - paid))
    return shares
