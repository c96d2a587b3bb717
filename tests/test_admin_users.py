from cricketstore.core.identity import Role


def test_list_users_with_search_and_role(client, admin, customer, make_user, auth_header):
    make_user(email="keeper@example.com", display_name="Gloveman")

    resp = client.get("/api/admin/users", headers=auth_header(admin))
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pagination"]["total_count"] == 3
    assert all("password_hash" not in u for u in body["users"])

    resp = client.get("/api/admin/users", params={"search": "glove"}, headers=auth_header(admin))
    assert [u["email"] for u in resp.json()["users"]] == ["keeper@example.com"]

    resp = client.get("/api/admin/users", params={"role": "admin"}, headers=auth_header(admin))
    assert [u["email"] for u in resp.json()["users"]] == ["admin@example.com"]

    resp = client.get("/api/admin/users", params={"limit": 2, "page": 2}, headers=auth_header(admin))
    assert resp.json()["pagination"] == {"page": 2, "limit": 2, "total_count": 3, "total_pages": 2, "has_more": False}
    assert len(resp.json()["users"]) == 1


def test_list_users_bad_paging(client, admin, auth_header):
    resp = client.get("/api/admin/users", params={"page": 0}, headers=auth_header(admin))
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_QUERY_PARAMS"


def test_get_user(client, admin, customer, auth_header):
    resp = client.get(f"/api/admin/users/{customer['id']}", headers=auth_header(admin))
    assert resp.status_code == 200
    assert resp.json()["email"] == "customer@example.com"

    assert client.get("/api/admin/users/999", headers=auth_header(admin)).status_code == 404
    assert client.get("/api/admin/users/abc", headers=auth_header(admin)).status_code == 400


def test_promote_customer(client, admin, customer, auth_header, db):
    resp = client.patch(f"/api/admin/users/{customer['id']}", json={"role": "admin"}, headers=auth_header(admin))
    assert resp.status_code == 200, resp.text
    assert resp.json()["user"]["role"] == "admin"
    assert Role.parse(db.get_record("users", "id", customer["id"])["role"]) is Role.ADMIN

    # the promoted user now passes the admin guard
    assert client.get("/api/admin/users", headers=auth_header(customer)).status_code == 200


def test_role_change_rules(client, admin, customer, auth_header, db):
    resp = client.patch(f"/api/admin/users/{admin['id']}", json={"role": "customer"}, headers=auth_header(admin))
    assert resp.status_code == 403
    assert resp.json()["error"] == "You cannot change your own role"

    resp = client.patch(f"/api/admin/users/{customer['id']}", json={"role": "superuser"}, headers=auth_header(admin))
    assert resp.status_code == 400

    assert client.patch("/api/admin/users/999", json={"role": "admin"}, headers=auth_header(admin)).status_code == 404
    assert db.count("users") == 2

    resp = client.patch(f"/api/admin/users/{admin['id']}", json={"role": "customer"}, headers=auth_header(customer))
    assert resp.status_code == 403
    assert db.get_record("users", "id", admin["id"])["role"] == "admin"
