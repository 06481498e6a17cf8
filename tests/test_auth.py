from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token

from models import db, Merchant, User


def test_signup_creates_merchant_and_owner(client):
    res = client.post("/api/signup", json={
        "email": "New@Shop.sn", "password": "pw12345", "shop_name": "Chez Ndeye", "phone": "770001122",
    })
    assert res.status_code == 201
    body = res.get_json()
    assert body["user"]["email"] == "new@shop.sn"
    assert body["user"]["role"] == "commercant"

    user = User.query.filter_by(email="new@shop.sn").one()
    assert user.merchant.shop_name == "Chez Ndeye"
    assert user.check_password("pw12345")
    assert Merchant.query.count() == 1


def test_signup_requires_fields(client):
    res = client.post("/api/signup", json={"email": "a@b.sn", "password": "x"})
    assert res.status_code == 400


def test_signup_duplicate_email(client, make_merchant):
    make_merchant(email="shop@test.sn")
    res = client.post("/api/signup", json={"email": "shop@test.sn", "password": "x", "shop_name": "Dup"})
    assert res.status_code == 409


def test_signin_returns_token_with_claims(client, make_merchant, password):
    _, user = make_merchant()
    res = client.post("/api/signin", json={"email": "shop@test.sn", "password": password})
    assert res.status_code == 200
    token = res.get_json()["token"]

    claims = decode_token(token)
    assert claims["sub"] == str(user.id)
    assert claims["email"] == "shop@test.sn"
    assert claims["role"] == "commercant"
    assert timedelta(seconds=claims["exp"] - claims["iat"]) == timedelta(days=7)


def test_signin_failures(client, make_merchant):
    make_merchant()
    assert client.post("/api/signin", json={"email": "nobody@test.sn", "password": "x"}).status_code == 401
    assert client.post("/api/signin", json={"email": "shop@test.sn", "password": "wrong"}).status_code == 401


def test_signin_rejects_client_role(client, password):
    user = User(email="client@test.sn", role="client")
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    res = client.post("/api/signin", json={"email": "client@test.sn", "password": password})
    assert res.status_code == 403


def test_signin_rejects_disabled_account(client, make_merchant, password):
    make_merchant(status="suspended")
    res = client.post("/api/signin", json={"email": "shop@test.sn", "password": password})
    assert res.status_code == 401
    assert "disabled" in res.get_json()["message"]


def test_verify_token(client, make_merchant):
    _, user = make_merchant()
    token = create_access_token(identity=str(user.id))

    res = client.get(f"/api/verify-token/{token}")
    assert res.status_code == 200
    assert res.get_json()["user"]["id"] == user.id

    assert client.get("/api/verify-token/not-a-token").status_code == 403

    ghost = create_access_token(identity="9999")
    assert client.get(f"/api/verify-token/{ghost}").status_code == 404


def test_protected_route_without_token(client):
    res = client.get("/api/me")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Access denied. No token provided."


def test_protected_route_with_bad_token(client):
    res = client.get("/api/me", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401


def test_unknown_user_in_token(client):
    token = create_access_token(identity="4242")
    res = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.get_json()["message"] == "User not found."


def test_wrong_role_is_forbidden(client, make_merchant, make_rider, auth_headers):
    merchant, _ = make_merchant()
    rider = make_rider(merchant)
    res = client.get("/api/merchant/categories", headers=auth_headers(rider.user))
    assert res.status_code == 403


def test_me(client, make_merchant, auth_headers):
    _, user = make_merchant()
    res = client.get("/api/me", headers=auth_headers(user))
    assert res.status_code == 200
    assert res.get_json()["user"]["email"] == "shop@test.sn"


def test_health_and_unknown_route(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["message"] == "Route /api/nope not found"
