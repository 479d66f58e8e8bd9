# tests/test_cart.py
from tests.factories import create_product


def test_cart_requires_login(client):
    assert client.get("/api/cart").status_code == 401


def test_add_and_merge_quantities(client, customer_headers, product):
    client.post("/api/cart", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)
    r = client.post("/api/cart", json={"product_id": product.id, "quantity": 3}, headers=customer_headers)
    assert r.status_code == 200
    cart = r.json()
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5
    assert cart["total_quantity"] == 5
    assert cart["total_price"] == 750.0


def test_cart_prices_with_discount(client, session, customer_headers):
    product = create_product(session, sale_price=200.0, discount_price=180.0)
    r = client.post("/api/cart", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)
    [line] = r.json()["items"]
    assert line["price_paid_per_item"] == 180.0
    assert line["line_total"] == 360.0


def test_cannot_exceed_available_stock(client, session, customer_headers):
    product = create_product(session, quantity=5, total_sales=2)
    r = client.post("/api/cart", json={"product_id": product.id, "quantity": 4}, headers=customer_headers)
    assert r.status_code == 400

    client.post("/api/cart", json={"product_id": product.id, "quantity": 3}, headers=customer_headers)
    r = client.post("/api/cart", json={"product_id": product.id, "quantity": 1}, headers=customer_headers)
    assert r.status_code == 400


def test_hidden_product_cannot_be_added(client, session, customer_headers):
    product = create_product(session, visibility=False)
    r = client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)
    assert r.status_code == 404


def test_update_quantity(client, customer_headers, product):
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)

    r = client.patch(f"/api/cart/{product.id}", json={"quantity": 7}, headers=customer_headers)
    assert r.status_code == 200
    assert r.json()["items"][0]["quantity"] == 7

    r = client.patch(f"/api/cart/{product.id}", json={"quantity": 0}, headers=customer_headers)
    assert r.status_code == 422

    r = client.patch(f"/api/cart/{product.id}", json={"quantity": 101}, headers=customer_headers)
    assert r.status_code == 400


def test_update_missing_item(client, customer_headers, product):
    r = client.patch(f"/api/cart/{product.id}", json={"quantity": 1}, headers=customer_headers)
    assert r.status_code == 404


def test_remove_and_clear(client, session, customer_headers, product):
    other = create_product(session, name="Rebar 12mm")
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)
    client.post("/api/cart", json={"product_id": other.id}, headers=customer_headers)

    r = client.delete(f"/api/cart/{product.id}", headers=customer_headers)
    assert [line["product_id"] for line in r.json()["items"]] == [other.id]

    r = client.delete("/api/cart", headers=customer_headers)
    assert r.json() == {"items": [], "total_quantity": 0, "total_price": 0.0}
    assert client.get("/api/cart", headers=customer_headers).json()["items"] == []


def test_carts_are_per_user(client, customer_headers, admin_headers, product):
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)
    assert client.get("/api/cart", headers=admin_headers).json()["items"] == []


# -------- checkout preview --------


def test_checkout_preview_matches_checkout_fees(client, admin_headers, customer_headers, product):
    client.put("/api/admin/settings/PAYMENT_COD_FEE", json={"value": "30"}, headers=admin_headers)
    client.post("/api/cart", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)

    r = client.get(
        "/api/cart/checkout-preview",
        params={"payment_type": "cash_on_delivery"},
        headers=customer_headers,
    )
    assert r.status_code == 200, r.text
    preview = r.json()
    assert preview["subtotal"] == 300.0
    assert preview["shipping_fee"] == 50.0
    assert preview["cod_fee"] == 30.0
    assert preview["total_amount"] == 380.0
    assert preview["vat_rate"] == 7.0
    assert preview["issues"] == []
    assert preview["can_checkout"] is True


def test_checkout_preview_lists_blocking_lines(client, session, customer_headers, product):
    scarce = create_product(session, name="Tile Grout", quantity=3)
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)
    client.post("/api/cart", json={"product_id": scarce.id, "quantity": 3}, headers=customer_headers)
    scarce.total_sales = 2
    session.add(scarce)
    session.commit()

    preview = client.get("/api/cart/checkout-preview", headers=customer_headers).json()
    assert [issue["product_id"] for issue in preview["issues"]] == [scarce.id]
    assert preview["subtotal"] == 150.0
    assert preview["can_checkout"] is False


def test_checkout_preview_in_maintenance(client, admin_headers, customer_headers, product):
    client.put("/api/admin/settings/MAINTENANCE_MODE", json={"value": "1"}, headers=admin_headers)
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)

    preview = client.get("/api/cart/checkout-preview", headers=customer_headers).json()
    assert preview["maintenance_message"]
    assert preview["can_checkout"] is False


def test_checkout_preview_empty_cart(client, customer_headers):
    preview = client.get("/api/cart/checkout-preview", headers=customer_headers).json()
    assert preview["subtotal"] == 0.0
    assert preview["can_checkout"] is False
