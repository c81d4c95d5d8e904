from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    marketplace: str
    listing_id: Optional[int] = None
    seq: int
    entry_type: str
    prev_hash: str
    entry_hash: str
    payload_json: Dict[str, Any]
    created_at: Optional[datetime] = None


class ChainVerifyOut(BaseModel):
    marketplace: str
    entries: int
    valid: bool
