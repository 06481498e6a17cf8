import base64
import os
from datetime import timedelta

import pytest

from models import db, Notification
from utils.timezone import utcnow

PHOTO = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake image").decode()


@pytest.fixture
def setup(make_merchant, make_rider, make_product):
    merchant, owner = make_merchant()
    rider = make_rider(merchant)
    product = make_product(merchant, price=2000)
    return merchant, owner, rider, product


def test_rider_order_buckets(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    make_order(merchant, [(product, 1)], status="assigned", rider=rider)
    make_order(merchant, [(product, 1)], status="picked_up", rider=rider)
    make_order(merchant, [(product, 1)], status="delivered", rider=rider)
    make_order(merchant, [(product, 1)])  # not assigned to this rider

    body = client.get("/api/delivery/orders", headers=auth_headers(rider.user)).get_json()
    assert len(body["orders"]) == 3
    assert len(body["pending"]) == 1
    assert len(body["active"]) == 1
    assert len(body["completed"]) == 1
    assert body["active"][0]["next_status"] == "en_route_delivery"


def test_rider_order_filters(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    first = make_order(merchant, [(product, 1)], status="assigned", rider=rider)
    make_order(merchant, [(product, 1)], status="delivered", rider=rider)
    h = auth_headers(rider.user)

    assert len(client.get("/api/delivery/orders?status=delivered", headers=h).get_json()["orders"]) == 1
    res = client.get(f"/api/delivery/orders?q={first.code}", headers=h).get_json()
    assert [o["id"] for o in res["orders"]] == [first.id]


def test_availability(client, setup, auth_headers):
    _, _, rider, _ = setup
    h = auth_headers(rider.user)
    res = client.post("/api/delivery/status", json={"status": "online"}, headers=h)
    assert res.get_json()["status"] == "online"
    assert rider.availability == "online"
    assert client.post("/api/delivery/status", json={"status": "busy"}, headers=h).status_code == 400


def test_accept_and_progress(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    order = make_order(merchant, [(product, 1)], status="assigned", rider=rider)
    h = auth_headers(rider.user)

    res = client.post(f"/api/delivery/orders/{order.id}/accept", headers=h)
    assert res.status_code == 200
    assert res.get_json()["order"]["accepted_at"] is not None
    assert Notification.query.filter_by(order_id=order.id).count() == 1

    for status in ("en_route_pickup", "picked_up", "en_route_delivery"):
        res = client.post(f"/api/delivery/orders/{order.id}/status", json={"status": status}, headers=h)
        assert res.get_json()["order"]["status"] == status
        assert res.get_json()["order"][f"{status}_at"] is not None

    assert client.post(f"/api/delivery/orders/{order.id}/status",
                       json={"status": "flying"}, headers=h).status_code == 400


def test_status_writes_are_not_ordered(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    order = make_order(merchant, [(product, 1)], status="delivered", rider=rider)

    res = client.post(f"/api/delivery/orders/{order.id}/status", json={"status": "picked_up"},
                      headers=auth_headers(rider.user))
    assert res.status_code == 200
    assert res.get_json()["order"]["status"] == "picked_up"


def test_rider_cannot_touch_other_orders(client, setup, make_rider, make_order, auth_headers):
    merchant, _, rider, product = setup
    other = make_rider(merchant, email="other.rider@test.sn")
    order = make_order(merchant, [(product, 1)], status="assigned", rider=other)

    res = client.post(f"/api/delivery/orders/{order.id}/accept", headers=auth_headers(rider.user))
    assert res.status_code == 404


def test_delivery_proof(client, app, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    order = make_order(merchant, [(product, 1)], status="en_route_delivery", rider=rider, pin="4321")
    h = auth_headers(rider.user)
    url = f"/api/delivery/orders/{order.id}/proof"

    assert client.post(url, json={"pin": "4321"}, headers=h).status_code == 400
    res = client.post(url, json={"pin": "0000", "photo": PHOTO}, headers=h)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Invalid PIN"

    res = client.post(url, json={"pin": "4321", "photo": PHOTO}, headers=h)
    assert res.status_code == 200
    assert res.get_json()["order"]["status"] == "delivered"

    assert order.delivery_pin is None
    saved = os.path.join(app.config["UPLOAD_FOLDER"], order.proof_photo)
    with open(saved, "rb") as fh:
        assert fh.read() == b"\x89PNG fake image"

    # PIN is single use
    assert client.post(url, json={"pin": "4321", "photo": PHOTO}, headers=h).status_code == 400


def test_delivery_proof_rejects_bad_photo(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    order = make_order(merchant, [(product, 1)], status="en_route_delivery", rider=rider, pin="1111")
    res = client.post(f"/api/delivery/orders/{order.id}/proof",
                      json={"pin": "1111", "photo": "not-an-image"}, headers=auth_headers(rider.user))
    assert res.status_code == 400
    for photo in (12345, {"data": "x"}):
        res = client.post(f"/api/delivery/orders/{order.id}/proof",
                          json={"pin": "1111", "photo": photo}, headers=auth_headers(rider.user))
        assert res.status_code == 400
    assert order.status == "en_route_delivery"


def test_history_groups_by_day(client, setup, make_order, auth_headers):
    merchant, _, rider, product = setup
    today = make_order(merchant, [(product, 1)], status="delivered", rider=rider)
    old = make_order(merchant, [(product, 2)], status="delivered", rider=rider)
    old.delivered_at = utcnow() - timedelta(days=5)
    db.session.commit()

    body = client.get("/api/delivery/history", headers=auth_headers(rider.user)).get_json()
    assert body["totals"]["Today"] == {"count": 1, "amount": today.get_final_total()}
    assert body["totals"]["Yesterday"] == {"count": 0, "amount": 0.0}
    assert body["totals"]["Older"]["count"] == 1
    assert body["history"][0]["day_category"] == "Today"


def test_push_subscription(client, setup, auth_headers):
    _, _, rider, _ = setup
    h = auth_headers(rider.user)
    sub = {"endpoint": "https://push.example/abc", "keys": {"p256dh": "k", "auth": "a"}}

    assert client.post("/api/delivery/push-subscriptions", json=sub, headers=h).status_code == 201
    assert client.post("/api/delivery/push-subscriptions", json=sub, headers=h).status_code == 201
    assert len(rider.push_subscriptions) == 1
    assert client.post("/api/delivery/push-subscriptions", json={"endpoint": "x"}, headers=h).status_code == 400
