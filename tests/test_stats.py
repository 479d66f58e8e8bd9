# tests/test_stats.py
from datetime import datetime, timezone

from tests.factories import auth_headers, create_level, create_product, create_user


def cancel(client, headers, order_id):
    r = client.post(f"/api/orders/{order_id}/cancel", json={"reason": "No longer needed"}, headers=headers)
    assert r.status_code == 200


def test_dashboard_summary(client, session, admin_headers, customer_headers, product, place_order):
    create_product(session, name="Tile Grout", quantity=5, reorder_point=8)
    place_order(product.id, quantity=2)
    cancelled = place_order(product.id, quantity=1)
    cancel(client, customer_headers, cancelled["id"])

    r = client.get("/api/admin/dashboard", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()

    summary = body["summary"]
    assert summary["sales_today"] == 350.0
    assert summary["total_revenue"] == 350.0
    assert summary["total_orders"] == 2
    assert summary["new_orders"] == 1
    assert summary["total_customers"] == 1
    assert summary["total_stock"] == 98 + 5

    [day] = body["daily_sales"]
    assert day["order_count"] == 1
    assert day["total_revenue"] == 350.0

    [top] = body["top_products"]
    assert top["product_id"] == product.id
    assert top["total_quantity"] == 2
    assert top["total_revenue"] == 300.0

    assert [o["id"] for o in body["latest_orders"]] == [cancelled["id"], cancelled["id"] - 1]
    assert [p["name"] for p in body["low_stock"]] == ["Tile Grout"]


def test_dashboard_rejects_bad_month(client, admin_headers):
    r = client.get("/api/admin/dashboard", params={"month": 13}, headers=admin_headers)
    assert r.status_code == 400


def test_daily_report(client, admin_headers, customer_headers, product, place_order):
    kept = place_order(product.id, quantity=2)
    cancelled = place_order(product.id, quantity=1)
    cancel(client, customer_headers, cancelled["id"])

    today = datetime.now(timezone.utc).date().isoformat()
    r = client.get("/api/admin/report/daily", params={"date": today}, headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["order_count"] == 2
    assert body["total_amount"] == kept["total_amount"]
    assert body["status_counts"] == {"pending": 1, "cancelled": 1}
    assert body["orders"][0]["customer_name"] == "Somchai"
    assert body["orders"][0]["item_count"] == 1


def test_daily_report_for_empty_day(client, admin_headers, product, place_order):
    place_order(product.id)
    r = client.get("/api/admin/report/daily", params={"date": "2001-01-01"}, headers=admin_headers)
    assert r.json()["orders"] == []
    assert r.json()["total_amount"] == 0.0


def test_inventory_report(client, session, admin_headers):
    create_product(session, quantity=20, total_sales=15, sale_cost=10.0, reorder_point=5)
    create_product(session, name="Oversold", quantity=2, total_sales=3, sale_cost=10.0)

    r = client.get("/api/admin/report/inventory", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    rows = {row["name"]: row for row in body["products"]}
    assert rows["Portland Cement 50kg"]["available_stock"] == 5
    assert rows["Portland Cement 50kg"]["stock_value"] == 50.0
    assert rows["Portland Cement 50kg"]["needs_reorder"] is True
    assert rows["Oversold"]["stock_value"] == 0.0
    assert body["total_stock_value"] == 50.0
    assert body["reorder_count"] == 2


def test_report_and_dashboard_flags_are_separate(client, session):
    create_level(session, 50, "Analyst", report=True)
    analyst = auth_headers(create_user(session, "analyst", access_level=50))

    assert client.get("/api/admin/report/inventory", headers=analyst).status_code == 200
    assert client.get("/api/admin/dashboard", headers=analyst).status_code == 403


def test_dashboard_for_explicit_month(client, admin_headers, product, place_order):
    order = place_order(product.id, quantity=1)
    now = datetime.now(timezone.utc)

    r = client.get(
        "/api/admin/dashboard",
        params={"year": now.year, "month": now.month},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    [day] = r.json()["daily_sales"]
    assert day["date"] == now.date().isoformat()
    assert day["total_revenue"] == order["total_amount"]

    r = client.get("/api/admin/dashboard", params={"year": 2001, "month": 12}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["daily_sales"] == []
