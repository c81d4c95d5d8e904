# nftmarket/services/deployment_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.errors import AlreadyInitialized, NotFound
from nftmarket.core.security import new_address
from nftmarket.models.deployment import Deployment
from nftmarket.models.enums import DeploymentKind, Role
from nftmarket.services.funds_ledger import FundsLedger
from nftmarket.services.role_service import RoleService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketplaceConfig:
    address: str
    owner: str
    funds_token: str
    single_nft: str
    multi_nft: str
    ownership_certificate: str
    license: str

    def collections(self) -> Dict[DeploymentKind, str]:
        return {
            DeploymentKind.SINGLE_NFT: self.single_nft,
            DeploymentKind.MULTI_NFT: self.multi_nft,
            DeploymentKind.OWNERSHIP_CERTIFICATE: self.ownership_certificate,
        }


class DeploymentService:
    """
    Initializes each contract-like component exactly once.

    The initializer becomes ADMIN of the component's scope; the marketplace
    owner is additionally GOVERNOR of the marketplace (force-ending auctions).
    """

    def __init__(self, roles: Optional[RoleService] = None, funds: Optional[FundsLedger] = None):
        self.roles = roles or RoleService()
        self.funds = funds or FundsLedger()

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, address: str) -> Optional[Deployment]:
        return db.get(Deployment, address)

    def require(self, db: Session, address: str, kind: DeploymentKind) -> Deployment:
        dep = self.get(db, address)
        if dep is None or dep.kind != kind.value:
            raise NotFound(f"No initialized {kind.value} at {address}.")
        return dep

    def list_deployments(self, db: Session, kind: Optional[DeploymentKind] = None) -> List[Deployment]:
        stmt = select(Deployment).order_by(Deployment.initialized_at.asc(), Deployment.address.asc())
        if kind is not None:
            stmt = stmt.where(Deployment.kind == kind.value)
        return list(db.execute(stmt).scalars().all())

    def get_marketplace(self, db: Session, address: str) -> MarketplaceConfig:
        dep = self.require(db, address, DeploymentKind.MARKETPLACE)
        cfg = dep.config_json
        return MarketplaceConfig(
            address=dep.address,
            owner=dep.owner,
            funds_token=cfg["funds_token"],
            single_nft=cfg["single_nft"],
            multi_nft=cfg["multi_nft"],
            ownership_certificate=cfg["ownership_certificate"],
            license=cfg["license"],
        )

    # ---------------------------
    # INITIALIZERS
    # ---------------------------

    def _initialize(
        self,
        db: Session,
        *,
        kind: DeploymentKind,
        owner: str,
        address: Optional[str],
        name: Optional[str] = None,
        symbol: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> Deployment:
        address = address or new_address()
        if self.get(db, address) is not None:
            raise AlreadyInitialized(f"{address} is already initialized.")

        dep = Deployment(
            address=address,
            kind=kind.value,
            name=name,
            symbol=symbol,
            owner=owner,
            config_json=config or {},
        )
        db.add(dep)
        db.flush()

        self.roles.grant_role(db, scope=address, role=Role.ADMIN, account=owner, granted_by=owner)
        logger.info("component initialized kind=%s address=%s owner=%s", kind.value, address, owner)
        return dep

    def initialize_single_nft(
        self, db: Session, *, owner: str, name: str, symbol: str, address: Optional[str] = None
    ) -> Deployment:
        return self._initialize(
            db, kind=DeploymentKind.SINGLE_NFT, owner=owner, address=address, name=name, symbol=symbol
        )

    def initialize_multi_nft(
        self,
        db: Session,
        *,
        owner: str,
        name: str,
        symbol: str,
        uri: str = "",
        address: Optional[str] = None,
    ) -> Deployment:
        return self._initialize(
            db,
            kind=DeploymentKind.MULTI_NFT,
            owner=owner,
            address=address,
            name=name,
            symbol=symbol,
            config={"uri": uri},
        )

    def initialize_ownership_certificate(
        self, db: Session, *, owner: str, address: Optional[str] = None
    ) -> Deployment:
        return self._initialize(
            db,
            kind=DeploymentKind.OWNERSHIP_CERTIFICATE,
            owner=owner,
            address=address,
            name="Ownership Certificate",
            symbol="OWNC",
        )

    def initialize_license(self, db: Session, *, owner: str, address: Optional[str] = None) -> Deployment:
        return self._initialize(db, kind=DeploymentKind.LICENSE, owner=owner, address=address, name="License")

    def initialize_funds_token(
        self,
        db: Session,
        *,
        owner: str,
        name: str = "Wrapped Ether",
        symbol: str = "WETH",
        holders: Iterable[str] = (),
        initial_balance: int = 0,
        address: Optional[str] = None,
    ) -> Deployment:
        holders = list(holders)
        dep = self._initialize(
            db,
            kind=DeploymentKind.FUNDS_TOKEN,
            owner=owner,
            address=address,
            name=name,
            symbol=symbol,
            config={"holders": holders, "initial_balance": str(initial_balance)},
        )
        for holder in holders:
            self.funds.mint(db, token=dep.address, to=holder, amount=initial_balance)
        return dep

    def initialize_marketplace(
        self,
        db: Session,
        *,
        owner: str,
        funds_token: str,
        single_nft: str,
        multi_nft: str,
        ownership_certificate: str,
        license: str,
        address: Optional[str] = None,
    ) -> Deployment:
        self.require(db, funds_token, DeploymentKind.FUNDS_TOKEN)
        self.require(db, single_nft, DeploymentKind.SINGLE_NFT)
        self.require(db, multi_nft, DeploymentKind.MULTI_NFT)
        self.require(db, ownership_certificate, DeploymentKind.OWNERSHIP_CERTIFICATE)
        self.require(db, license, DeploymentKind.LICENSE)

        dep = self._initialize(
            db,
            kind=DeploymentKind.MARKETPLACE,
            owner=owner,
            address=address,
            name="Marketplace",
            config={
                "funds_token": funds_token,
                "single_nft": single_nft,
                "multi_nft": multi_nft,
                "ownership_certificate": ownership_certificate,
                "license": license,
            },
        )
        self.roles.grant_role(db, scope=dep.address, role=Role.GOVERNOR, account=owner, granted_by=owner)
        return dep
