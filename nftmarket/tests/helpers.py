from nftmarket.db.session import transaction
from nftmarket.models.enums import AssetType, Role
from nftmarket.policies.listing_policies import AssetInput
from nftmarket.services.funds_ledger import FundsLedger
from nftmarket.services.ownership_registry import OwnershipRegistry
from nftmarket.services.role_service import RoleService

URI = "https://gateway.pinata.cloud/ipfs/Qme2AwawrQoBYbE21UPQtfSkcZ3KYAQMMh6z61paJ4i4bw"
INITIAL_BALANCE = 1000 * 10**18
PRICE = 100000000000000
T0 = 1655296910000


def addr(n: int) -> str:
    return "0x" + format(n, "040x")


OWNER = addr(1)
USER = addr(2)
BUYER = addr(3)
BIDDER = addr(4)
STAKEHOLDER_A = addr(5)
STAKEHOLDER_B = addr(6)


class FakeClock:
    """Injectable epoch-ms clock that only moves when told to."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MarketStack:
    """
    Fully deployed marketplace plus the setup steps every trading flow
    repeats (minter grant, mint, marketplace approval, funds allowance).
    """

    def __init__(self, db, addresses):
        self.db = db
        self.single_nft = addresses["SINGLE_NFT"]
        self.multi_nft = addresses["MULTI_NFT"]
        self.certificate = addresses["OWNERSHIP_CERTIFICATE"]
        self.license = addresses["LICENSE"]
        self.weth = addresses["FUNDS_TOKEN"]
        self.marketplace = addresses["MARKETPLACE"]

        self.roles = RoleService()
        self.registry = OwnershipRegistry(self.roles)
        self.funds = FundsLedger()

    def mint_single(self, to: str = USER) -> int:
        with transaction(self.db):
            self.roles.grant_role(self.db, scope=self.single_nft, role=Role.MINTER, account=to, granted_by=OWNER)
            token = self.registry.create_single(self.db, collection=self.single_nft, minter=to, to=to, uri=URI)
            self.registry.set_approval_for_all(
                self.db, collection=self.single_nft, owner=to, operator=self.marketplace, approved=True
            )
            token_id = token.token_id
        return token_id

    def mint_multi(self, to: str = USER, amount: int = 10) -> int:
        with transaction(self.db):
            self.roles.grant_role(self.db, scope=self.multi_nft, role=Role.MINTER, account=to, granted_by=OWNER)
            token = self.registry.create_multi(
                self.db, collection=self.multi_nft, minter=to, to=to, amount=amount, uri=URI, data="0x01"
            )
            self.registry.set_approval_for_all(
                self.db, collection=self.multi_nft, owner=to, operator=self.marketplace, approved=True
            )
            token_id = token.token_id
        return token_id

    def allow(self, owner: str, amount: int = 100 * 10**18) -> None:
        with transaction(self.db):
            self.funds.approve(self.db, token=self.weth, owner=owner, spender=self.marketplace, amount=amount)

    def balance(self, account: str) -> int:
        return self.funds.balance_of(self.db, token=self.weth, account=account)

    def owner_of(self, token_id: int) -> str:
        return self.registry.owner_of(self.db, collection=self.single_nft, token_id=token_id)

    def single_asset(self, token_id: int, *, seller: str = USER, price: int = PRICE, **kw) -> AssetInput:
        return AssetInput(
            asset_type=AssetType.SINGLE_EDITION,
            seller=seller,
            creator=seller,
            token_address=self.single_nft,
            token_id=token_id,
            quantity=1,
            price=price,
            uri=URI,
            **kw,
        )


def auth_headers(client, username: str, address: str) -> dict:
    r = client.post(
        "/v1/auth/register",
        json={
            "username": username,
            "password": "correct-horse",
            "display_name": username.title(),
            "address": address,
        },
    )
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
