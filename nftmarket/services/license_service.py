# nftmarket/services/license_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.clock import Clock, now_ms
from nftmarket.core.config import get_settings
from nftmarket.core.errors import InvalidAsset
from nftmarket.db.session import transaction
from nftmarket.models.enums import DeploymentKind
from nftmarket.models.license import License
from nftmarket.services.deployment_service import DeploymentService
from nftmarket.services.ownership_registry import OwnershipRegistry

logger = logging.getLogger(__name__)


class LicenseService:
    """
    License ledger. A license is active while term_start <= now <= term_end.
    """

    def __init__(
        self,
        clock: Clock = now_ms,
        registry: Optional[OwnershipRegistry] = None,
        deployments: Optional[DeploymentService] = None,
        term_unit_ms: Optional[int] = None,
    ):
        self.clock = clock
        self.registry = registry or OwnershipRegistry()
        self.deployments = deployments or DeploymentService()
        self.term_unit_ms = term_unit_ms or get_settings().license_term_unit_ms

    def grant_license(
        self,
        db: Session,
        *,
        license_contract: str,
        collection: str,
        token_id: int,
        term_length_units: int,
        licensee: str,
        grantor: str,
    ) -> License:
        """
        Repeated grants for the same triple create distinct licenses.
        Commits its own unit of work.
        """
        with transaction(db):
            self.deployments.require(db, license_contract, DeploymentKind.LICENSE)

            if term_length_units < 1:
                raise InvalidAsset("License term must be at least one unit.")
            if not self.registry.token_exists(db, collection=collection, token_id=token_id):
                raise InvalidAsset(f"Token {token_id} does not exist in {collection}.")

            now = self.clock()
            row = License(
                license_contract=license_contract,
                collection=collection,
                token_id=token_id,
                licensee=licensee,
                grantor=grantor,
                term_units=term_length_units,
                term_start=now,
                term_end=now + term_length_units * self.term_unit_ms,
            )
            db.add(row)
            db.flush()
        logger.info(
            "license granted id=%s collection=%s token_id=%s licensee=%s term_end=%s",
            row.id,
            collection,
            token_id,
            licensee,
            row.term_end,
        )
        return row

    def is_licensed(
        self,
        db: Session,
        *,
        license_contract: str,
        collection: str,
        token_id: int,
        account: str,
    ) -> bool:
        now = self.clock()
        hit = db.execute(
            select(License.id)
            .where(
                License.license_contract == license_contract,
                License.collection == collection,
                License.token_id == token_id,
                License.licensee == account,
                License.term_start <= now,
                License.term_end >= now,
            )
            .limit(1)
        ).first()
        return hit is not None

    def list_licenses(
        self,
        db: Session,
        *,
        license_contract: str,
        collection: str,
        token_id: int,
    ) -> List[License]:
        return list(
            db.execute(
                select(License)
                .where(
                    License.license_contract == license_contract,
                    License.collection == collection,
                    License.token_id == token_id,
                )
                .order_by(License.id.asc())
            ).scalars().all()
        )
