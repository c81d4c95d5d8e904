import pytest

from nftmarket.core.errors import AlreadyInitialized, InsufficientFunds, InvalidAsset, NotFound, Unauthorized
from nftmarket.db.session import transaction
from nftmarket.deploy import deploy
from nftmarket.models.enums import DeploymentKind, Role
from nftmarket.services.deployment_service import DeploymentService
from nftmarket.services.funds_ledger import FundsLedger
from nftmarket.services.ownership_registry import OwnershipRegistry
from nftmarket.services.role_service import RoleService
from nftmarket.tests.helpers import BIDDER, BUYER, INITIAL_BALANCE, OWNER, URI, USER, addr

SCOPE = addr(500)


# ---------------------------------------------------------------------
# roles
# ---------------------------------------------------------------------


def test_grant_and_revoke_role(db):
    svc = RoleService()
    assert svc.has_role(db, scope=SCOPE, role=Role.MINTER, account=USER) is False

    svc.grant_role(db, scope=SCOPE, role=Role.MINTER, account=USER, granted_by=OWNER)
    svc.grant_role(db, scope=SCOPE, role=Role.ADMIN, account=USER, granted_by=OWNER)
    assert svc.has_role(db, scope=SCOPE, role=Role.MINTER, account=USER) is True
    assert svc.roles_of(db, scope=SCOPE, account=USER) == [Role.ADMIN, Role.MINTER]

    svc.revoke_role(db, scope=SCOPE, role=Role.MINTER, account=USER)
    assert svc.has_role(db, scope=SCOPE, role=Role.MINTER, account=USER) is False
    # revoking twice is a no-op
    svc.revoke_role(db, scope=SCOPE, role=Role.MINTER, account=USER)


def test_roles_are_scoped(db):
    svc = RoleService()
    svc.grant_role(db, scope=SCOPE, role=Role.GOVERNOR, account=USER)
    assert svc.has_role(db, scope=addr(501), role=Role.GOVERNOR, account=USER) is False

    with pytest.raises(Unauthorized):
        svc.require_role(db, scope=addr(501), role=Role.GOVERNOR, account=USER)
    svc.require_role(db, scope=SCOPE, role=Role.GOVERNOR, account=USER)


# ---------------------------------------------------------------------
# funds ledger
# ---------------------------------------------------------------------


def test_transfer_and_insufficient_funds(db):
    funds = FundsLedger()
    token = addr(600)
    funds.mint(db, token=token, to=USER, amount=500)

    funds.transfer(db, token=token, sender=USER, to=BUYER, amount=200)
    assert funds.balance_of(db, token=token, account=USER) == 300
    assert funds.balance_of(db, token=token, account=BUYER) == 200

    with pytest.raises(InsufficientFunds):
        funds.transfer(db, token=token, sender=BUYER, to=USER, amount=201)


def test_transfer_from_spends_allowance(db):
    funds = FundsLedger()
    token = addr(600)
    funds.mint(db, token=token, to=USER, amount=1000)
    funds.approve(db, token=token, owner=USER, spender=OWNER, amount=400)

    funds.transfer_from(db, token=token, spender=OWNER, owner=USER, to=BIDDER, amount=150)
    assert funds.allowance(db, token=token, owner=USER, spender=OWNER) == 250
    assert funds.balance_of(db, token=token, account=BIDDER) == 150

    with pytest.raises(InsufficientFunds):
        funds.transfer_from(db, token=token, spender=OWNER, owner=USER, to=BIDDER, amount=251)

    with pytest.raises(InvalidAsset):
        funds.approve(db, token=token, owner=USER, spender=OWNER, amount=-1)


# ---------------------------------------------------------------------
# deployments
# ---------------------------------------------------------------------


def test_deploy_wires_every_component(db, stack):
    svc = DeploymentService()
    market = svc.get_marketplace(db, stack.marketplace)

    assert market.owner == OWNER
    assert market.funds_token == stack.weth
    assert market.single_nft == stack.single_nft
    assert market.ownership_certificate == stack.certificate

    roles = RoleService()
    assert roles.has_role(db, scope=stack.marketplace, role=Role.GOVERNOR, account=OWNER)
    assert roles.has_role(db, scope=stack.certificate, role=Role.GOVERNOR, account=stack.marketplace)
    assert roles.has_role(db, scope=stack.single_nft, role=Role.ADMIN, account=OWNER)

    for holder in (USER, BUYER, BIDDER):
        assert stack.balance(holder) == INITIAL_BALANCE


def test_deploy_rerun_reuses_components(db, stack):
    again = deploy(db, deployer=OWNER, holders=[USER], initial_balance=INITIAL_BALANCE)

    assert again[DeploymentKind.MARKETPLACE.value] == stack.marketplace
    assert again[DeploymentKind.FUNDS_TOKEN.value] == stack.weth
    # holders are not minted a second time
    assert stack.balance(USER) == INITIAL_BALANCE
    assert len(DeploymentService().list_deployments(db, DeploymentKind.MARKETPLACE)) == 1


def test_component_initializes_once(db, stack):
    svc = DeploymentService()
    with pytest.raises(AlreadyInitialized):
        svc.initialize_license(db, owner=BUYER, address=stack.license)

    with pytest.raises(NotFound):
        svc.get_marketplace(db, stack.single_nft)


# ---------------------------------------------------------------------
# ownership registry
# ---------------------------------------------------------------------


def test_minting_requires_minter_role(db, stack):
    registry = OwnershipRegistry()
    with pytest.raises(Unauthorized):
        registry.create_single(db, collection=stack.single_nft, minter=BUYER, to=BUYER, uri=URI)

    token_id = stack.mint_single(USER)
    assert token_id == 1
    assert registry.owner_of(db, collection=stack.single_nft, token_id=token_id) == USER
    assert registry.creator_of(db, collection=stack.single_nft, token_id=token_id) == USER

    # wrong collection kind
    with pytest.raises(InvalidAsset):
        registry.create_single(db, collection=stack.multi_nft, minter=USER, to=USER, uri=URI)


def test_multi_edition_balances(db, stack):
    registry = OwnershipRegistry()
    token_id = stack.mint_multi(USER, amount=10)

    with transaction(db):
        registry.transfer(
            db, collection=stack.multi_nft, operator=USER, from_=USER, to=BUYER, token_id=token_id, amount=3
        )

    assert registry.balance_of(db, collection=stack.multi_nft, token_id=token_id, owner=USER) == 7
    assert registry.balance_of(db, collection=stack.multi_nft, token_id=token_id, owner=BUYER) == 3
    with pytest.raises(InvalidAsset):
        registry.owner_of(db, collection=stack.multi_nft, token_id=token_id)


def test_transfer_needs_holder_or_approved_operator(db, stack):
    registry = OwnershipRegistry()
    token_id = stack.mint_single(USER)

    with pytest.raises(Unauthorized):
        registry.transfer(db, collection=stack.single_nft, operator=BUYER, from_=USER, to=BUYER, token_id=token_id)

    # approved in mint_single
    registry.transfer(
        db, collection=stack.single_nft, operator=stack.marketplace, from_=USER, to=BUYER, token_id=token_id
    )
    assert registry.owner_of(db, collection=stack.single_nft, token_id=token_id) == BUYER

    with pytest.raises(InvalidAsset):
        registry.transfer(db, collection=stack.single_nft, operator=USER, from_=USER, to=BUYER, token_id=token_id)


def test_certificates_are_governor_only(db, stack):
    registry = OwnershipRegistry()
    with pytest.raises(Unauthorized):
        registry.issue_certificate(db, collection=stack.certificate, governor=USER, to=USER, creator=USER, uri=URI)

    cert = registry.issue_certificate(
        db, collection=stack.certificate, governor=stack.marketplace, to=USER, creator=USER, uri=URI
    )
    assert registry.owner_of(db, collection=stack.certificate, token_id=cert.token_id) == USER

    # even the holder cannot move a certificate
    with pytest.raises(Unauthorized):
        registry.transfer(
            db, collection=stack.certificate, operator=USER, from_=USER, to=BUYER, token_id=cert.token_id
        )
