from __future__ import annotations

import time
from typing import Callable

# Epoch milliseconds. Listing windows (start_at, expires_at, auction_end)
# and license terms are all expressed in this unit.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def get_clock() -> Clock:
    """
    FastAPI dependency; tests override it with a fixed or stepping clock.
    """
    return now_ms
