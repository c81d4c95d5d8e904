from __future__ import annotations

from typing import Annotated

from pydantic import Field, PlainSerializer

# --- Identity primitives ---
Address = Annotated[str, Field(pattern=r"^0x[0-9a-fA-F]{40}$", description="0x-prefixed 20-byte address")]

# --- Numeric primitives ---
# 256-bit token amounts: accepted as JSON numbers or decimal strings, always
# returned as decimal strings so JS clients keep full precision.
TokenAmount = Annotated[
    int,
    Field(ge=0, lt=2**256),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]
NonNegInt = Annotated[int, Field(ge=0)]
PositiveInt = Annotated[int, Field(ge=1)]

# epoch milliseconds
TimestampMs = Annotated[int, Field(ge=0, description="epoch milliseconds")]
