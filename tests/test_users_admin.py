# tests/test_users_admin.py
from app.models.user import User

from tests.factories import auth_headers, create_level, create_user, fetch


def test_create_and_list_users(client, admin_headers):
    r = client.post(
        "/api/admin/user",
        json={"username": "kanya", "password": "pass1234", "email": "Kanya@Example.com"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["email"] == "kanya@example.com"
    assert r.json()["full_name"] == "kanya"

    r = client.get("/api/admin/user", params={"search": "kan"}, headers=admin_headers)
    assert [u["username"] for u in r.json()] == ["kanya"]


def test_create_user_with_unknown_level(client, admin_headers):
    r = client.post(
        "/api/admin/user",
        json={"username": "kanya", "password": "pass1234", "access_level": 42},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_filter_by_access_level(client, session, admin_headers, customer):
    r = client.get("/api/admin/user", params={"access_level": 0}, headers=admin_headers)
    assert [u["id"] for u in r.json()] == [customer.id]


def test_update_user_level(client, session, admin_headers, customer):
    create_level(session, 10, "Warehouse", stock_mgr=True)
    r = client.patch(
        f"/api/admin/user/{customer.id}", json={"access_level": 10}, headers=admin_headers
    )
    assert r.status_code == 200
    assert fetch(session, User, customer.id).access_level == 10


def test_admin_cannot_demote_self(client, admin, admin_headers):
    r = client.patch(f"/api/admin/user/{admin.id}", json={"access_level": 0}, headers=admin_headers)
    assert r.status_code == 400


def test_email_must_stay_unique(client, session, admin_headers, customer):
    create_user(session, "mali")
    r = client.patch(
        f"/api/admin/user/{customer.id}", json={"email": "mali@example.com"}, headers=admin_headers
    )
    assert r.status_code == 409


def test_delete_user(client, session, admin_headers, customer):
    r = client.delete(f"/api/admin/user/{customer.id}", headers=admin_headers)
    assert r.status_code == 200
    assert fetch(session, User, customer.id) is None


def test_cannot_delete_self(client, admin, admin_headers):
    r = client.delete(f"/api/admin/user/{admin.id}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "You cannot delete your own account"


def test_cannot_delete_user_with_orders(client, admin_headers, customer, product, place_order):
    place_order(product.id)
    r = client.delete(f"/api/admin/user/{customer.id}", headers=admin_headers)
    assert r.status_code == 409


def test_user_management_needs_flag(client, customer, customer_headers):
    assert client.get("/api/admin/user", headers=customer_headers).status_code == 403
    assert client.get(f"/api/admin/user/{customer.id}").status_code == 401


def test_get_missing_user(client, admin_headers):
    assert client.get("/api/admin/user/4040", headers=admin_headers).status_code == 404


def test_user_manager_level(client, session, customer):
    create_level(session, 40, "Support", user_mgr=True)
    support = auth_headers(create_user(session, "support", access_level=40))
    r = client.get(f"/api/admin/user/{customer.id}", headers=support)
    assert r.status_code == 200
    assert r.json()["username"] == "somchai"
