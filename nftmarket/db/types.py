from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class TokenAmount(TypeDecorator):
    """
    Unsigned 256-bit token amount.

    Stored as a base-10 string so that wei-scale values (well past 2**63)
    survive every backend without float rounding; exposed as Python int.
    """

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError("Token amounts cannot be negative.")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)
