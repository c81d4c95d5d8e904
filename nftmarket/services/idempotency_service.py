# nftmarket/services/idempotency_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.hashing import payload_digest
from nftmarket.models.idempotency_key import IdempotencyKeyRecord

logger = logging.getLogger(__name__)


class IdempotencyService:
    """
    Replay protection for buy/bid calls. A record is keyed by
    (account, endpoint, Idempotency-Key) and keeps the first response.
    """

    def get_existing(
        self,
        db: Session,
        *,
        account: str,
        endpoint_key: str,
        idem_key: str,
    ) -> Optional[IdempotencyKeyRecord]:
        stmt = select(IdempotencyKeyRecord).where(
            IdempotencyKeyRecord.account == account,
            IdempotencyKeyRecord.endpoint_key == endpoint_key,
            IdempotencyKeyRecord.idem_key == idem_key,
        )
        return db.execute(stmt).scalar_one_or_none()

    def reserve_or_replay(
        self,
        db: Session,
        *,
        account: str,
        endpoint_key: str,
        idem_key: str,
        request_payload: Dict[str, Any],
    ) -> Tuple[Optional[Dict[str, Any]], Optional[int], str]:
        """
        Returns (replay_json, replay_status, request_hash). The first two are
        None when the key is new. A known key with a different payload
        raises ValueError.
        """
        req_hash = payload_digest(request_payload)
        record = self.get_existing(db, account=account, endpoint_key=endpoint_key, idem_key=idem_key)
        if record is None:
            return None, None, req_hash

        if record.request_hash != req_hash:
            logger.warning(
                "idempotency key reused with new payload account=%s endpoint=%s",
                account,
                endpoint_key,
            )
            raise ValueError("Idempotency-Key reuse with different payload is not allowed.")

        logger.info("idempotent replay account=%s endpoint=%s", account, endpoint_key)
        return record.response_json, int(record.response_status), req_hash

    def store_response(
        self,
        db: Session,
        *,
        account: str,
        endpoint_key: str,
        idem_key: str,
        request_hash: str,
        response_json: Dict[str, Any],
        response_status: int,
    ) -> None:
        # first response wins
        if self.get_existing(db, account=account, endpoint_key=endpoint_key, idem_key=idem_key):
            return

        db.add(
            IdempotencyKeyRecord(
                account=account,
                endpoint_key=endpoint_key,
                idem_key=idem_key,
                request_hash=request_hash,
                response_status=response_status,
                response_json=response_json,
            )
        )
        db.commit()
