# tests/test_orders.py
from fastapi.testclient import TestClient

from cricketstore.main import create_app


def test_my_orders_requires_session(client):
    resp = client.get("/api/orders/my-orders")
    assert resp.status_code == 401, resp.text
    body = resp.json()
    assert body["code"] == "AUTH_REQUIRED"
    assert body["error"]


def test_my_orders_empty(client, customer, auth_header):
    resp = client.get("/api/orders/my-orders", headers=auth_header(customer))
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"orders": [], "count": 0}


def test_my_orders_only_own_newest_first(client, customer, make_order, auth_header):
    older = make_order(customer_email=customer["email"], created_at="2024-01-01 10:00:00")
    newer = make_order(customer_email=customer["email"], created_at="2024-03-01 10:00:00")
    make_order(customer_email="someone-else@example.com")

    resp = client.get("/api/orders/my-orders", headers=auth_header(customer))
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["count"] == 2
    assert [o["id"] for o in body["orders"]] == [int(newer["id"]), int(older["id"])]
    assert isinstance(body["orders"][0]["items"], list)
    assert body["orders"][0]["total"] == 108.0


def test_get_order_owner_admin_and_stranger(client, customer, admin, make_user, make_order, auth_header):
    order = make_order(customer_email=customer["email"])
    stranger = make_user()

    resp = client.get(f"/api/orders/{order['id']}", headers=auth_header(customer))
    assert resp.status_code == 200, resp.text
    assert resp.json()["order_number"] == order["order_number"]

    resp = client.get(f"/api/orders/{order['id']}", headers=auth_header(admin))
    assert resp.status_code == 200, resp.text

    resp = client.get(f"/api/orders/{order['id']}", headers=auth_header(stranger))
    assert resp.status_code == 403, resp.text
    assert resp.json()["code"] == "AUTH_INSUFFICIENT_PERMISSIONS"


def test_get_order_not_found_and_bad_id(client, customer, auth_header):
    resp = client.get("/api/orders/999", headers=auth_header(customer))
    assert resp.status_code == 404
    assert resp.json() == {"error": "Order not found", "code": "ORDER_NOT_FOUND"}

    resp = client.get("/api/orders/abc", headers=auth_header(customer))
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_FAILED"


def test_admin_updates_status_and_tracking(client, admin, make_order, auth_header, db):
    order = make_order()
    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"status": "shipped", "tracking_number": "1Z999AA10123456784"},
        headers=auth_header(admin),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "shipped"
    assert body["tracking_number"] == "1Z999AA10123456784"
    assert body["shipped_at"]
    assert body["updated_at"]

    stored = db.get_record("orders", "id", order["id"])
    assert stored["status"] == "shipped"


def test_admin_marks_refunded(client, admin, make_order, auth_header):
    order = make_order(payment_status="paid")
    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"status": "refunded", "payment_status": "refunded"},
        headers=auth_header(admin),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["payment_status"] == "refunded"


def test_update_rejects_fields_outside_allow_list(client, admin, make_order, auth_header, db):
    order = make_order()
    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"status": "processing", "total": 0.01, "customer_email": "attacker@example.com"},
        headers=auth_header(admin),
    )
    assert resp.status_code == 400, resp.text
    assert resp.json()["code"] == "VALIDATION_FAILED"

    stored = db.get_record("orders", "id", order["id"])
    assert stored["status"] == "pending"
    assert float(stored["total"]) == 108.0


def test_update_rejects_unknown_status_and_empty_body(client, admin, make_order, auth_header):
    order = make_order()
    resp = client.put(f"/api/orders/{order['id']}", json={"status": "teleported"}, headers=auth_header(admin))
    assert resp.status_code == 400

    resp = client.put(f"/api/orders/{order['id']}", json={}, headers=auth_header(admin))
    assert resp.status_code == 400


def test_update_missing_order_is_404_and_creates_nothing(client, admin, make_order, auth_header, db):
    make_order()
    before = db.count("orders")
    resp = client.put("/api/orders/4242", json={"status": "shipped"}, headers=auth_header(admin))
    assert resp.status_code == 404, resp.text
    assert resp.json()["code"] == "ORDER_NOT_FOUND"
    assert db.count("orders") == before
    assert db.get_record("orders", "id", 4242) is None


def test_update_requires_admin(client, customer, make_order, auth_header, db):
    order = make_order(customer_email=customer["email"])
    resp = client.put(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=auth_header(customer))
    assert resp.status_code == 403
    assert resp.json()["code"] == "AUTH_ADMIN_REQUIRED"
    assert db.get_record("orders", "id", order["id"])["status"] == "pending"


def test_unauthenticated_mutations_do_not_touch_storage(client, make_order, db, monkeypatch):
    order = make_order()
    calls = []
    monkeypatch.setattr(db, "update_records", lambda *a, **kw: calls.append(a))
    monkeypatch.setattr(db, "delete_records", lambda *a, **kw: calls.append(a))

    assert client.put(f"/api/orders/{order['id']}", json={"status": "shipped"}).status_code == 401
    assert client.delete(f"/api/orders/{order['id']}").status_code == 401
    assert client.delete("/api/wishlist/1").status_code == 401
    assert calls == []


def test_invalid_token_is_unauthenticated(client, make_order, auth_header):
    order = make_order()
    resp = client.put(f"/api/orders/{order['id']}", json={"status": "shipped"}, headers=auth_header("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json()["code"] == "AUTH_REQUIRED"


def test_delete_order(client, admin, make_order, auth_header, db):
    order = make_order()
    resp = client.delete(f"/api/orders/{order['id']}", headers=auth_header(admin))
    assert resp.status_code == 200, resp.text
    assert resp.json()["success"] is True
    assert db.get_record("orders", "id", order["id"]) is None

    resp = client.delete(f"/api/orders/{order['id']}", headers=auth_header(admin))
    assert resp.status_code == 404


def test_admin_list_orders_with_status_filter(client, admin, make_order, auth_header):
    make_order(status="pending")
    make_order(status="shipped")
    resp = client.get("/api/orders", headers=auth_header(admin))
    assert resp.status_code == 200, resp.text
    assert resp.json()["count"] == 2

    resp = client.get("/api/orders", params={"status": "shipped"}, headers=auth_header(admin))
    assert [o["status"] for o in resp.json()["orders"]] == ["shipped"]


def test_strict_limit_rejects_extra_mutation_without_persistence(make_settings, monkeypatch, make_user_for):
    app = create_app(settings=make_settings(RATE_LIMIT_STRICT="2/minute"))
    client = TestClient(app)
    db = app.state.db
    admin, header = make_user_for(db, app.state.settings, admin=True)
    order = make_order_row(db)

    for status in ("processing", "shipped"):
        resp = client.put(f"/api/orders/{order['id']}", json={"status": status}, headers=header)
        assert resp.status_code == 200, resp.text

    calls = []
    original = db.update_records
    monkeypatch.setattr(db, "update_records", lambda *a, **kw: calls.append(a) or original(*a, **kw))

    resp = client.put(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=header)
    assert resp.status_code == 429, resp.text
    assert resp.json()["code"] == "RATE_LIMIT_EXCEEDED"
    assert resp.headers["X-RateLimit-Limit"] == "2"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert resp.headers["X-RateLimit-Reset"]
    assert calls == []
    assert db.get_record("orders", "id", order["id"])["status"] == "shipped"


def make_order_row(db):
    return db.create_record(
        "orders",
        {"order_number": "ORD-LIMIT-1", "customer_email": "c@example.com", "items": "[]", "total": 10, "status": "pending"},
    )
