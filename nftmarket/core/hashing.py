from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any, Dict

LEDGER_DOMAIN = "nftmarket.ledger.v1"


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    # token amounts and anything else exotic hash as their decimal string
    return str(value)


def canonical_dumps(obj: Dict[str, Any]) -> str:
    # sorted keys, no whitespace
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_encode)


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def payload_digest(payload: Dict[str, Any]) -> str:
    """Digest of a request or audit payload, independent of key order."""
    return sha256_hex(canonical_dumps(payload))


def hash_chain(prev_hash: str, payload: Dict[str, Any]) -> str:
    """
    Link one market ledger entry to its predecessor. The domain tag keeps
    ledger hashes distinct from payload digests of the same content.
    """
    return sha256_hex(f"{LEDGER_DOMAIN}|{prev_hash}|{canonical_dumps(payload)}")
