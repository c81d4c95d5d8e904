# nftmarket/policies/rbac.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """
    Authenticated API caller. `address` is the account every marketplace
    operation runs as; roles are looked up per scope, never carried here.
    """

    address: str
    username: str
    display_name: str
