from nftmarket.tests.helpers import (
    BIDDER,
    BUYER,
    INITIAL_BALANCE,
    OWNER,
    PRICE,
    T0,
    URI,
    USER,
    auth_headers,
)

ALLOWANCE = 100 * 10**18


def _deploy(client, headers) -> dict:
    addresses = {}
    for path, body, key in [
        ("single-nft", {"name": "My NFT", "symbol": "MNFT"}, "single"),
        ("multi-nft", {"name": "My NFT", "symbol": "MNFT", "uri": ""}, "multi"),
        ("ownership-certificate", {}, "certificate"),
        ("license", {}, "license"),
        ("funds-token", {"holders": [USER, BUYER, BIDDER], "initial_balance": INITIAL_BALANCE}, "weth"),
    ]:
        r = client.post(f"/v1/deployments/{path}", json=body, headers=headers)
        assert r.status_code == 201, r.text
        addresses[key] = r.json()["address"]

    r = client.post(
        "/v1/deployments/marketplace",
        json={
            "funds_token": addresses["weth"],
            "single_nft": addresses["single"],
            "multi_nft": addresses["multi"],
            "ownership_certificate": addresses["certificate"],
            "license": addresses["license"],
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    addresses["market"] = r.json()["address"]

    r = client.post(
        f"/v1/roles/{addresses['certificate']}/grant",
        json={"role": "GOVERNOR", "account": addresses["market"]},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["has_role"] is True
    return addresses


def _bootstrap(client):
    h = {
        "owner": auth_headers(client, "owner", OWNER),
        "user": auth_headers(client, "user", USER),
        "buyer": auth_headers(client, "buyer", BUYER),
        "bidder": auth_headers(client, "bidder", BIDDER),
    }
    a = _deploy(client, h["owner"])

    r = client.post(f"/v1/roles/{a['single']}/grant", json={"role": "MINTER", "account": USER}, headers=h["owner"])
    assert r.status_code == 200, r.text
    r = client.post(f"/v1/tokens/{a['single']}/approval", json={"operator": a["market"]}, headers=h["user"])
    assert r.status_code == 200, r.text

    for who in ("buyer", "bidder"):
        r = client.post(
            f"/v1/funds/{a['weth']}/approve",
            json={"spender": a["market"], "amount": ALLOWANCE},
            headers=h[who],
        )
        assert r.status_code == 200, r.text
    return h, a


def _mint(client, h, a) -> int:
    r = client.post(f"/v1/tokens/{a['single']}/single", json={"to": USER, "uri": URI}, headers=h["user"])
    assert r.status_code == 201, r.text
    return r.json()["token_id"]


def _asset(a, token_id, price=PRICE) -> dict:
    return {
        "asset_type": 1,
        "seller": USER,
        "creator": USER,
        "token_address": a["single"],
        "token_id": token_id,
        "quantity": 1,
        "price": price,
        "uri": URI,
    }


def test_fixed_sale_end_to_end(client):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"

    r = client.post(f"{base}/listings/fixed", json={"asset": _asset(a, token_id)}, headers=h["user"])
    assert r.status_code == 201, r.text
    listing = r.json()
    assert listing["state"] == "LISTED"
    assert listing["price"] == str(PRICE)
    assert listing["current_price"] == str(PRICE)

    r = client.get(f"/v1/tokens/{a['single']}/{token_id}")
    assert r.json()["holders"] == [{"owner": a["market"], "amount": 1}]

    r = client.post(f"{base}/listings/{listing['id']}/buy", json={}, headers=h["buyer"])
    assert r.status_code == 200, r.text
    sale = r.json()
    assert sale["buyer"] == BUYER
    assert sale["final_price"] == str(PRICE)
    assert sale["payouts"] == [
        {"position": 0, "recipient": USER, "role": "SELLER", "share_bps": None, "amount": str(PRICE)}
    ]

    r = client.get(f"/v1/tokens/{a['single']}/{token_id}")
    assert r.json()["holders"] == [{"owner": BUYER, "amount": 1}]

    r = client.get(f"/v1/funds/{a['weth']}/balance/{USER}")
    assert r.json()["balance"] == str(INITIAL_BALANCE + PRICE)

    r = client.get(f"{base}/listings/{listing['id']}")
    assert r.json()["state"] == "SOLD"
    assert r.json()["current_price"] is None

    r = client.get(f"{base}/listings/{listing['id']}/sale")
    assert r.status_code == 200
    assert r.json()["certificate_collection"] == a["certificate"]

    r = client.get(f"/v1/ledger/{a['market']}/verify")
    assert r.json() == {"marketplace": a["market"], "entries": 2, "valid": True}

    r = client.post(f"{base}/listings/{listing['id']}/buy", json={}, headers=h["bidder"])
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "AlreadySettled"


def test_buy_is_idempotent_per_key(client):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"
    listing_id = client.post(
        f"{base}/listings/fixed", json={"asset": _asset(a, token_id)}, headers=h["user"]
    ).json()["id"]

    headers = {**h["buyer"], "Idempotency-Key": "buy-once"}
    first = client.post(f"{base}/listings/{listing_id}/buy", json={}, headers=headers)
    assert first.status_code == 200, first.text

    replay = client.post(f"{base}/listings/{listing_id}/buy", json={}, headers=headers)
    assert replay.status_code == 200
    assert replay.json() == first.json()

    conflict = client.post(f"{base}/listings/{listing_id}/buy", json={"use_escrow_balance": False}, headers=headers)
    assert conflict.status_code == 409

    r = client.get(f"/v1/funds/{a['weth']}/balance/{BUYER}")
    assert r.json()["balance"] == str(INITIAL_BALANCE - PRICE)


def test_lifecycle_routes_enforce_seller_and_marketplace(client):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"
    listing_id = client.post(
        f"{base}/listings/fixed", json={"asset": _asset(a, token_id)}, headers=h["user"]
    ).json()["id"]

    r = client.post(f"{base}/listings/{listing_id}/pause", headers=h["buyer"])
    assert r.status_code == 403

    r = client.post(f"{base}/listings/{listing_id}/pause", headers=h["user"])
    assert r.status_code == 200, r.text
    assert r.json()["state"] == "PAUSED"

    r = client.post(f"{base}/listings/{listing_id}/buy", json={}, headers=h["buyer"])
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "NotForSale"

    r = client.get(f"/v1/marketplace/{a['weth']}/listings/{listing_id}")
    assert r.status_code == 404

    r = client.post(f"{base}/listings/{listing_id}/cancel", headers=h["user"])
    assert r.json()["state"] == "CANCELLED"

    r = client.get(f"{base}/listings", params={"state": "CANCELLED"})
    assert [row["id"] for row in r.json()] == [listing_id]


def test_listing_validation_errors(client):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"

    # someone else's token
    r = client.post(f"{base}/listings/fixed", json={"asset": _asset(a, token_id)}, headers=h["buyer"])
    assert r.status_code == 403

    bad = _asset(a, token_id)
    bad["stakeholders"] = [BIDDER]
    r = client.post(f"{base}/listings/fixed", json={"asset": bad}, headers=h["user"])
    assert r.status_code == 422

    bad["royalty_split"] = [20000]
    r = client.post(f"{base}/listings/fixed", json={"asset": bad}, headers=h["user"])
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "InvalidAsset"


def test_dutch_price_route(client, clock):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"

    r = client.post(
        f"{base}/listings/dutch",
        json={
            "asset": _asset(a, token_id, price=PRICE - 224519000),
            "dutch": {
                "starting_price": PRICE,
                "start_at": T0,
                "expires_at": T0 + 224519000,
                "discount_rate": 1,
            },
        },
        headers=h["user"],
    )
    assert r.status_code == 201, r.text
    listing_id = r.json()["id"]
    assert r.json()["effective_state"] == "ACTIVE"

    r = client.get(f"{base}/listings/{listing_id}/price")
    assert r.json()["unit_price"] == str(PRICE)

    clock.advance(224519000)
    r = client.get(f"{base}/listings/{listing_id}/price")
    assert r.json()["unit_price"] == str(PRICE - 224519000)

    clock.advance(1)
    r = client.get(f"{base}/listings/{listing_id}")
    assert r.json()["effective_state"] == "EXPIRED"

    r = client.post(f"{base}/listings/{listing_id}/expire", headers=h["bidder"])
    assert r.status_code == 200, r.text
    assert r.json()["state"] == "EXPIRED"


def test_english_auction_routes(client, clock):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)
    base = f"/v1/marketplace/{a['market']}"

    r = client.post(
        f"{base}/listings/english",
        json={"asset": _asset(a, token_id), "reserve_price": PRICE, "duration": 60_000},
        headers=h["user"],
    )
    assert r.status_code == 201, r.text
    listing_id = r.json()["id"]

    r = client.post(f"{base}/listings/{listing_id}/start", headers=h["user"])
    assert r.status_code == 200, r.text
    assert r.json()["auction_end"] == T0 + 60_000

    r = client.post(f"{base}/listings/{listing_id}/bid", json={"amount": 90000000000000}, headers=h["buyer"])
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "BidTooLow"

    r = client.post(f"{base}/listings/{listing_id}/bid", json={"amount": PRICE}, headers=h["buyer"])
    assert r.status_code == 200, r.text
    assert r.json()["amount"] == str(PRICE)

    clock.advance(1000)

    r = client.post(f"{base}/listings/{listing_id}/bid", json={"amount": str(2 * PRICE)}, headers=h["bidder"])
    assert r.status_code == 200, r.text

    r = client.get(f"{base}/listings/{listing_id}/bids")
    assert [(b["bidder"], b["refunded"]) for b in r.json()] == [(BUYER, True), (BIDDER, False)]

    r = client.post(f"{base}/listings/{listing_id}/end", headers=h["user"])
    assert r.status_code == 403

    clock.advance(60_000)
    r = client.post(f"{base}/listings/{listing_id}/end", headers=h["user"])
    assert r.status_code == 200, r.text
    assert r.json()["state"] == "SOLD"

    r = client.get(f"{base}/listings/{listing_id}/sale")
    assert r.json()["buyer"] == BIDDER
    assert r.json()["final_price"] == str(2 * PRICE)

    r = client.get(f"/v1/ledger/{a['market']}", params={"listing_id": listing_id})
    assert [e["entry_type"] for e in r.json()] == ["LISTING_CREATED", "BID_REFUNDED", "SALE_SETTLED"]


def test_roles_and_licenses(client, clock):
    h, a = _bootstrap(client)
    token_id = _mint(client, h, a)

    r = client.post(f"/v1/roles/{a['single']}/grant", json={"role": "MINTER", "account": BUYER}, headers=h["user"])
    assert r.status_code == 403

    r = client.get(f"/v1/roles/{a['single']}/accounts/{USER}")
    assert r.json()["roles"] == ["MINTER"]
    r = client.get(f"/v1/roles/{a['market']}/GOVERNOR/{OWNER}")
    assert r.json()["has_role"] is True

    r = client.post(
        f"/v1/licenses/{a['license']}",
        json={"collection": a["single"], "token_id": token_id, "term_length_units": 1, "licensee": BUYER},
        headers=h["user"],
    )
    assert r.status_code == 201, r.text
    assert r.json()["term_start"] == T0

    r = client.get(
        f"/v1/licenses/{a['license']}/check",
        params={"collection": a["single"], "token_id": token_id, "account": BUYER},
    )
    assert r.json()["is_licensed"] is True

    r = client.post(
        f"/v1/licenses/{a['license']}",
        json={"collection": a["single"], "token_id": token_id + 7, "term_length_units": 1, "licensee": BUYER},
        headers=h["user"],
    )
    assert r.status_code == 400
