from __future__ import annotations


def dutch_price(
    *,
    starting_price: int,
    floor: int,
    discount_rate: int,
    start_at: int,
    now: int,
) -> int:
    """
    Unit price of a Dutch auction at `now`.

    Holds at starting_price until start_at, then drops by discount_rate per
    elapsed millisecond, never below the floor.
    """
    if now <= start_at:
        return starting_price
    discounted = starting_price - discount_rate * (now - start_at)
    return max(floor, discounted)
