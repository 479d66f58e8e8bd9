# tests/test_access.py
from tests.factories import auth_headers, create_level, create_user

WAREHOUSE = {"level": 10, "name": "Warehouse", "stock_mgr": True}


def test_builtin_levels_are_seeded(client, customer_headers):
    r = client.get("/api/master/access", headers=customer_headers)
    assert r.status_code == 200
    levels = {row["level"]: row for row in r.json()}
    assert set(levels) == {0, 999}
    assert levels[999]["sys_admin"] is True
    assert levels[0]["order_mgr"] is False


def test_create_update_delete_level(client, admin_headers):
    r = client.post("/api/master/access", json=WAREHOUSE, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["stock_mgr"] is True

    r = client.patch(
        "/api/master/access/10", json={"name": "Warehouse Lead", "report": True}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Warehouse Lead"
    assert r.json()["report"] is True
    assert r.json()["stock_mgr"] is True

    r = client.delete("/api/master/access/10", headers=admin_headers)
    assert r.status_code == 200
    assert client.get("/api/master/access/10", headers=admin_headers).status_code == 404


def test_duplicate_or_reserved_level(client, admin_headers):
    client.post("/api/master/access", json=WAREHOUSE, headers=admin_headers)
    assert client.post("/api/master/access", json=WAREHOUSE, headers=admin_headers).status_code == 409
    r = client.post("/api/master/access", json={"level": 999, "name": "Root"}, headers=admin_headers)
    assert r.status_code == 409


def test_builtin_levels_can_only_be_renamed(client, admin_headers):
    r = client.patch("/api/master/access/0", json={"order_mgr": True}, headers=admin_headers)
    assert r.status_code == 400
    r = client.patch("/api/master/access/0", json={"name": "Member"}, headers=admin_headers)
    assert r.status_code == 200
    assert client.delete("/api/master/access/999", headers=admin_headers).status_code == 400


def test_level_in_use_cannot_be_deleted(client, session, admin_headers):
    create_level(session, 20, "Sales", order_mgr=True)
    create_user(session, "sales1", access_level=20)
    r = client.delete("/api/master/access/20", headers=admin_headers)
    assert r.status_code == 409


def test_roles_include_user_counts_and_audit_names(client, session, admin, admin_headers):
    client.post("/api/master/access", json=WAREHOUSE, headers=admin_headers)
    create_user(session, "picker", access_level=10)

    r = client.get("/api/master/role", headers=admin_headers)
    assert r.status_code == 200
    roles = {row["level"]: row for row in r.json()}
    assert roles[10]["user_count"] == 1
    assert roles[10]["create_by_name"] == admin.full_name
    assert roles[999]["user_count"] == 1


def test_only_sys_admin_manages_levels(client, session, customer_headers):
    create_level(session, 10, "Stock", stock_mgr=True)
    staff = create_user(session, "stocker", access_level=10)
    for headers in (customer_headers, auth_headers(staff)):
        r = client.post("/api/master/access", json={"level": 11, "name": "X"}, headers=headers)
        assert r.status_code == 403
        assert r.json()["message"] == "You do not have permission to perform this action"
        assert client.get("/api/master/role", headers=headers).status_code == 403


def test_permission_flags_gate_back_office_routes(client, session):
    create_level(session, 30, "Orders", order_mgr=True)
    clerk = auth_headers(create_user(session, "clerk", access_level=30))

    assert client.get("/api/admin/order", headers=clerk).status_code == 200
    assert client.get("/api/admin/user", headers=clerk).status_code == 403
    assert client.get("/api/admin/products", headers=clerk).status_code == 403
