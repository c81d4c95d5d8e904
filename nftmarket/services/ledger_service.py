# nftmarket/services/ledger_service.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.hashing import hash_chain
from nftmarket.models.enums import LedgerEntryType
from nftmarket.models.ledger_entry import MarketLedgerEntry


class LedgerService:
    """
    Append-only market ledger, one hash chain per marketplace.
    Settlements, refunds, cancellations and expiries all land here.
    """

    GENESIS_HASH = "0" * 64

    # ─────────────────────────────────────────────
    # INTERNAL HELPERS
    # ─────────────────────────────────────────────

    def _get_last_entry(self, db: Session, *, marketplace: str) -> Optional[MarketLedgerEntry]:
        return db.execute(
            select(MarketLedgerEntry)
            .where(MarketLedgerEntry.marketplace == marketplace)
            .order_by(MarketLedgerEntry.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    # ─────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────

    def append_entry(
        self,
        db: Session,
        *,
        marketplace: str,
        listing_id: Optional[int],
        entry_type: LedgerEntryType,
        payload: Dict[str, Any],
        at: int,
    ) -> MarketLedgerEntry:
        """
        Append a single immutable entry. Runs inside the caller's unit of
        work; the (marketplace, seq) unique constraint rejects a racing append.
        """
        last = self._get_last_entry(db, marketplace=marketplace)

        prev_hash = last.entry_hash if last else self.GENESIS_HASH
        seq = 1 if not last else last.seq + 1

        entry_payload = {
            "marketplace": marketplace,
            "listing_id": listing_id,
            "entry_type": entry_type.value,
            "payload": payload,
            "at": at,
        }

        row = MarketLedgerEntry(
            marketplace=marketplace,
            listing_id=listing_id,
            seq=seq,
            entry_type=entry_type.value,
            prev_hash=prev_hash,
            entry_hash=hash_chain(prev_hash, entry_payload),
            payload_json=entry_payload,
        )
        db.add(row)
        db.flush()
        return row

    # ─────────────────────────────────────────────
    # READ-ONLY HELPERS (AUDIT)
    # ─────────────────────────────────────────────

    def list_entries(
        self,
        db: Session,
        *,
        marketplace: str,
        listing_id: Optional[int] = None,
    ) -> List[MarketLedgerEntry]:
        stmt = select(MarketLedgerEntry).where(MarketLedgerEntry.marketplace == marketplace)
        if listing_id is not None:
            stmt = stmt.where(MarketLedgerEntry.listing_id == listing_id)
        return list(db.execute(stmt.order_by(MarketLedgerEntry.seq.asc())).scalars().all())

    def verify_chain(self, db: Session, *, marketplace: str) -> bool:
        entries = self.list_entries(db, marketplace=marketplace)

        prev_hash = self.GENESIS_HASH
        for e in entries:
            if e.prev_hash != prev_hash or e.entry_hash != hash_chain(prev_hash, e.payload_json):
                return False
            prev_hash = e.entry_hash

        return True
