from nftmarket.tests.helpers import BUYER, USER, auth_headers


def test_health_echoes_request_id(client):
    r = client.get("/v1/health", headers={"X-Request-Id": "req-123"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "request_id": "req-123"}
    assert r.headers["X-Request-Id"] == "req-123"


def test_register_login_and_me(client):
    headers = auth_headers(client, "alice", USER)

    me = client.get("/v1/auth/me", headers=headers)
    assert me.status_code == 200, me.text
    assert me.json() == {"address": USER, "username": "alice", "display_name": "Alice"}

    r = client.post("/v1/auth/login", json={"username": "alice", "password": "correct-horse"})
    assert r.status_code == 200, r.text
    assert r.json()["token_type"] == "bearer"

    r = client.post("/v1/auth/login", json={"username": "alice", "password": "wrong-horse"})
    assert r.status_code == 401


def test_register_conflicts(client):
    auth_headers(client, "alice", USER)

    r = client.post(
        "/v1/auth/register",
        json={"username": "alice", "password": "correct-horse", "display_name": "Other", "address": BUYER},
    )
    assert r.status_code == 409

    r = client.post(
        "/v1/auth/register",
        json={"username": "bob", "password": "correct-horse", "display_name": "Bob", "address": USER},
    )
    assert r.status_code == 409


def test_register_allocates_address_when_omitted(client):
    r = client.post(
        "/v1/auth/register",
        json={"username": "carol", "password": "correct-horse", "display_name": "Carol"},
    )
    assert r.status_code == 201, r.text

    me = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {r.json()['access_token']}"})
    address = me.json()["address"]
    assert address.startswith("0x") and len(address) == 42


def test_protected_routes_need_a_valid_token(client):
    r = client.get("/v1/auth/me")
    assert r.status_code in (401, 403)

    r = client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
