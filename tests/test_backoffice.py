from datetime import datetime, timedelta

import pytest

from models import db, User
from utils.timezone import utcnow


@pytest.fixture
def admin_headers(make_admin, auth_headers):
    return auth_headers(make_admin())


def test_backoffice_is_admin_only(client, make_merchant, auth_headers):
    _, user = make_merchant()
    assert client.get("/api/backoffice/stats", headers=auth_headers(user)).status_code == 403
    assert client.get("/api/backoffice/stats").status_code == 401


def test_stats(client, admin_headers, make_merchant, make_product, make_order):
    merchant, _ = make_merchant(delivery_charge=500)
    product = make_product(merchant, price=1000)
    make_order(merchant, [(product, 1)])
    done = make_order(merchant, [(product, 2)], status="delivered")
    done.delivered_at = done.created_at + timedelta(minutes=30)
    old = make_order(merchant, [(product, 1)], status="delivered")
    old.created_at = utcnow() - timedelta(days=20)
    old.delivered_at = old.created_at + timedelta(minutes=10)
    db.session.commit()

    week = client.get("/api/backoffice/stats?range=week", headers=admin_headers).get_json()["stats"]
    assert week["total_deliveries"] == 2
    assert week["completed_deliveries"] == 1
    assert week["pending_deliveries"] == 1
    assert week["completion_rate"] == 50.0
    assert week["average_delivery_time"] == 30.0
    assert week["total_revenue"] == 2500

    everything = client.get("/api/backoffice/stats?range=all", headers=admin_headers).get_json()["stats"]
    assert everything["total_deliveries"] == 3
    assert everything["average_delivery_time"] == 20.0

    assert client.get("/api/backoffice/stats?range=decade", headers=admin_headers).status_code == 400


def test_merchant_listing(client, admin_headers, make_merchant, make_product, make_order):
    merchant, _ = make_merchant(shop_name="Chez Awa")
    make_merchant(email="other@test.sn", shop_name="Quincaillerie", status="inactive")
    make_order(merchant, [(make_product(merchant, price=1000), 1)], status="delivered")
    make_order(merchant, [(make_product(merchant, name="Riz", price=3000), 1)])

    body = client.get("/api/backoffice/merchants", headers=admin_headers).get_json()
    assert body["total"] == 2

    awa = client.get("/api/backoffice/merchants?q=awa", headers=admin_headers).get_json()["merchants"]
    assert len(awa) == 1
    assert awa[0]["total_orders"] == 2
    assert awa[0]["total_revenue"] == 2000
    assert awa[0]["is_premium"] is False
    assert awa[0]["email"] == "shop@test.sn"

    inactive = client.get("/api/backoffice/merchants?status=inactive", headers=admin_headers).get_json()
    assert [m["name"] for m in inactive["merchants"]] == ["Quincaillerie"]


def test_suspend_merchant_disables_users(client, admin_headers, make_merchant, make_rider, password):
    merchant, owner = make_merchant()
    rider = make_rider(merchant)

    res = client.patch(f"/api/backoffice/merchants/{merchant.id}/status",
                       json={"status": "suspended"}, headers=admin_headers)
    assert res.status_code == 200
    assert {u.status for u in User.query.filter(User.merchant_id == merchant.id)} == {"suspended"}

    res = client.post("/api/signin", json={"email": owner.email, "password": password})
    assert res.status_code == 401
    assert rider.user.status == "suspended"

    assert client.patch(f"/api/backoffice/merchants/{merchant.id}/status",
                        json={"status": "gone"}, headers=admin_headers).status_code == 400
    assert client.patch("/api/backoffice/merchants/999/status",
                        json={"status": "active"}, headers=admin_headers).status_code == 404


def test_suspension_reaches_riders_created_by_the_merchant(client, admin_headers, make_merchant,
                                                           auth_headers):
    merchant, owner = make_merchant()
    res = client.post("/api/merchant/delivery-people", json={
        "first_name": "Ibou", "email": "ibou@test.sn", "phone": "776543210", "password": "pw",
    }, headers=auth_headers(owner))
    assert res.status_code == 201

    client.patch(f"/api/backoffice/merchants/{merchant.id}/status",
                 json={"status": "suspended"}, headers=admin_headers)
    res = client.post("/api/signin", json={"email": "ibou@test.sn", "password": "pw"})
    assert res.status_code == 401

    client.patch(f"/api/backoffice/merchants/{merchant.id}/status",
                 json={"status": "active"}, headers=admin_headers)
    res = client.post("/api/signin", json={"email": "ibou@test.sn", "password": "pw"})
    assert res.status_code == 200


def test_orders_pagination(client, admin_headers, make_merchant, make_product, make_order):
    merchant, _ = make_merchant()
    product = make_product(merchant)
    for _ in range(25):
        make_order(merchant, [(product, 1)])
    make_order(merchant, [(product, 1)], status="cancelled")

    first = client.get("/api/backoffice/orders", headers=admin_headers).get_json()
    assert first["total"] == 26
    assert first["pages"] == 2
    assert len(first["orders"]) == 20
    second = client.get("/api/backoffice/orders?page=2", headers=admin_headers).get_json()
    assert len(second["orders"]) == 6

    cancelled = client.get("/api/backoffice/orders?status=cancelled", headers=admin_headers).get_json()
    assert cancelled["total"] == 1


def test_delivery_people(client, admin_headers, make_merchant, make_rider):
    merchant, _ = make_merchant()
    make_rider(merchant)
    body = client.get("/api/backoffice/delivery-people", headers=admin_headers).get_json()
    assert body["delivery_people"][0]["email"] == "rider@test.sn"


def test_reports(client, admin_headers, make_merchant, make_product, make_order):
    merchant, _ = make_merchant(shop_name="Chez Awa", delivery_charge=500)
    product = make_product(merchant, price=1000)
    make_order(merchant, [(product, 2)], status="delivered")
    make_order(merchant, [(product, 1)], status="cancelled")

    body = client.get(f"/api/backoffice/reports?type=day&merchant_id={merchant.id}",
                      headers=admin_headers).get_json()
    assert body["type"] == "day"
    row = body["reports"][0]
    assert row["merchant"] == "Chez Awa"
    assert row["total_orders"] == 2
    assert row["delivered"] == 1
    assert row["cancelled"] == 1
    assert row["revenue"] == 2500

    assert client.get("/api/backoffice/reports?type=year", headers=admin_headers).status_code == 400
    assert client.get("/api/backoffice/reports?from=yesterday", headers=admin_headers).status_code == 400


def test_report_to_date_excludes_next_midnight(client, admin_headers, make_merchant,
                                                make_product, make_order):
    merchant, _ = make_merchant()
    product = make_product(merchant)
    late = make_order(merchant, [(product, 1)])
    midnight = make_order(merchant, [(product, 1)])
    late.created_at = datetime(2024, 3, 1, 23, 59)
    midnight.created_at = datetime(2024, 3, 2, 0, 0)
    db.session.commit()

    body = client.get("/api/backoffice/reports?from=2024-03-01&to=2024-03-01",
                      headers=admin_headers).get_json()
    assert [(r["period"], r["total_orders"]) for r in body["reports"]] == [("2024-03-01", 1)]


def test_system_health(client, admin_headers, make_merchant):
    make_merchant(delivery_charge=1000, free_delivery_limit=10000)
    body = client.get("/api/backoffice/system-health", headers=admin_headers).get_json()
    assert body["healthy"] is True
    assert [c["name"] for c in body["checks"]][0] == "database"
