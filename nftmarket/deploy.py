import argparse
import json
import logging
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from nftmarket.core.config import get_settings
from nftmarket.core.logging import configure_logging
from nftmarket.db.session import SessionLocal, transaction
from nftmarket.models.deployment import Deployment
from nftmarket.models.enums import DeploymentKind, Role
from nftmarket.services.deployment_service import DeploymentService

logger = logging.getLogger(__name__)


def _existing(svc: DeploymentService, db: Session, kind: DeploymentKind, deployer: str) -> Optional[Deployment]:
    for dep in svc.list_deployments(db, kind):
        if dep.owner == deployer:
            return dep
    return None


def deploy(
    db: Session,
    *,
    deployer: str,
    holders: Iterable[str] = (),
    initial_balance: Optional[int] = None,
) -> Dict[str, str]:
    """
    Deploy sequence: single NFT, multi NFT, ownership certificate, license,
    then the marketplace (funds token created only when missing).

    Components `deployer` already owns are reused, so re-running is safe.
    """
    svc = DeploymentService()
    if initial_balance is None:
        initial_balance = get_settings().mock_funds_initial_balance

    steps = [
        (DeploymentKind.SINGLE_NFT, lambda: svc.initialize_single_nft(db, owner=deployer, name="My NFT", symbol="MNFT")),
        (
            DeploymentKind.MULTI_NFT,
            lambda: svc.initialize_multi_nft(db, owner=deployer, name="My NFT", symbol="MNFT", uri=""),
        ),
        (DeploymentKind.OWNERSHIP_CERTIFICATE, lambda: svc.initialize_ownership_certificate(db, owner=deployer)),
        (DeploymentKind.LICENSE, lambda: svc.initialize_license(db, owner=deployer)),
        (
            DeploymentKind.FUNDS_TOKEN,
            lambda: svc.initialize_funds_token(
                db, owner=deployer, holders=holders, initial_balance=initial_balance
            ),
        ),
    ]

    addresses: Dict[str, str] = {}
    with transaction(db):
        for kind, init in steps:
            dep = _existing(svc, db, kind, deployer)
            if dep is None:
                dep = init()
            else:
                logger.info("reusing %s at %s", kind.value, dep.address)
            addresses[kind.value] = dep.address

        market = _existing(svc, db, DeploymentKind.MARKETPLACE, deployer)
        if market is None:
            market = svc.initialize_marketplace(
                db,
                owner=deployer,
                funds_token=addresses[DeploymentKind.FUNDS_TOKEN.value],
                single_nft=addresses[DeploymentKind.SINGLE_NFT.value],
                multi_nft=addresses[DeploymentKind.MULTI_NFT.value],
                ownership_certificate=addresses[DeploymentKind.OWNERSHIP_CERTIFICATE.value],
                license=addresses[DeploymentKind.LICENSE.value],
            )
        addresses[DeploymentKind.MARKETPLACE.value] = market.address

        # settlement issues certificates and moves certificate tokens as the marketplace
        svc.roles.grant_role(
            db,
            scope=addresses[DeploymentKind.OWNERSHIP_CERTIFICATE.value],
            role=Role.GOVERNOR,
            account=market.address,
            granted_by=deployer,
        )

    return addresses


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Initialize the marketplace components.")
    parser.add_argument("--deployer", required=True, help="address that owns every component")
    parser.add_argument("--holder", action="append", default=[], help="initial funds-token holder (repeatable)")
    args = parser.parse_args(argv)

    configure_logging(get_settings())

    db: Session = SessionLocal()
    try:
        addresses = deploy(db, deployer=args.deployer, holders=args.holder)
    finally:
        db.close()

    print(json.dumps(addresses, indent=2))


if __name__ == "__main__":
    main()
