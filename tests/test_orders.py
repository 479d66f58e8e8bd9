# tests/test_orders.py
from app.models.order import Order
from app.models.product import Product

from tests.factories import (
    PNG_BYTES,
    auth_headers,
    create_address,
    create_product,
    create_user,
    fetch,
)


# -------- checkout --------


def test_checkout_snapshots_items_and_applies_fees(client, session, product, place_order):
    order = place_order(product.id, quantity=2)

    assert order["status"] == "pending"
    assert order["subtotal"] == 300.0
    # default flat rate 50, free shipping from 1500
    assert order["shipping_fee"] == 50.0
    assert order["cod_fee"] == 0.0
    assert order["total_amount"] == 350.0
    assert order["current_vat"] == 7.0
    assert order["province"] == "Bangkok"

    [item] = order["items"]
    assert item["name"] == "Portland Cement 50kg"
    assert item["quantity"] == 2
    assert item["price_paid_per_item"] == 150.0
    assert item["subtotal"] == 300.0

    stored = fetch(session, Product, product.id)
    assert stored.total_sales == 2
    assert stored.available_stock == 98


def test_checkout_clears_cart(client, customer_headers, product, place_order):
    place_order(product.id)
    cart = client.get("/api/cart", headers=customer_headers).json()
    assert cart["items"] == []


def test_checkout_uses_discount_and_free_shipping(client, session, place_order):
    product = create_product(session, sale_price=1000.0, discount_price=800.0)
    order = place_order(product.id, quantity=2)
    assert order["subtotal"] == 1600.0
    assert order["shipping_fee"] == 0.0
    assert order["total_amount"] == 1600.0


def test_checkout_cod_fee_from_settings(client, admin_headers, product, place_order):
    r = client.put("/api/admin/settings/PAYMENT_COD_FEE", json={"value": "30"}, headers=admin_headers)
    assert r.status_code == 200, r.text

    order = place_order(product.id, quantity=1, payment_type="cash_on_delivery")
    assert order["cod_fee"] == 30.0
    assert order["total_amount"] == 150.0 + 50.0 + 30.0


def test_checkout_empty_cart(client, customer_headers, address):
    r = client.post(
        "/api/orders",
        json={"address_id": address.id, "payment_type": "bank_transfer"},
        headers=customer_headers,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Cart is empty"


def test_checkout_rejects_foreign_address(client, session, customer_headers, product):
    other = create_user(session, "mali")
    foreign = create_address(session, other)
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)

    r = client.post(
        "/api/orders",
        json={"address_id": foreign.id, "payment_type": "bank_transfer"},
        headers=customer_headers,
    )
    assert r.status_code == 404


def test_checkout_reports_items_out_of_stock(client, session, customer_headers, address):
    product = create_product(session, quantity=5)
    client.post(
        "/api/cart", json={"product_id": product.id, "quantity": 5}, headers=customer_headers
    )
    # stock sold elsewhere after the item was put in the cart
    product.total_sales = 3
    session.add(product)
    session.commit()

    r = client.post(
        "/api/orders",
        json={"address_id": address.id, "payment_type": "bank_transfer"},
        headers=customer_headers,
    )
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "Cart validation failed"
    assert body["items"][0]["product_id"] == product.id


def test_checkout_closed_in_maintenance_mode(client, admin_headers, customer_headers, product, address):
    client.put("/api/admin/settings/MAINTENANCE_MODE", json={"value": "True"}, headers=admin_headers)
    client.post("/api/cart", json={"product_id": product.id}, headers=customer_headers)

    r = client.post(
        "/api/orders",
        json={"address_id": address.id, "payment_type": "bank_transfer"},
        headers=customer_headers,
    )
    assert r.status_code == 503


def test_checkout_requires_login(client, address):
    r = client.post("/api/orders", json={"address_id": address.id, "payment_type": "bank_transfer"})
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication required"


# -------- queries --------


def test_list_and_get_own_orders(client, customer_headers, product, place_order):
    order = place_order(product.id)

    listed = client.get("/api/orders", headers=customer_headers).json()
    assert [o["id"] for o in listed] == [order["id"]]
    assert "items" not in listed[0]

    detail = client.get(f"/api/orders/{order['id']}", headers=customer_headers).json()
    assert len(detail["items"]) == 1


def test_other_customers_order_is_not_found(client, session, product, place_order):
    order = place_order(product.id)
    stranger = create_user(session, "stranger")
    r = client.get(f"/api/orders/{order['id']}", headers=auth_headers(stranger))
    assert r.status_code == 404


# -------- transfer slip --------


def upload_slip(client, headers, order_id, content_type="image/png", data=PNG_BYTES):
    return client.post(
        f"/api/orders/{order_id}/transaction-slip",
        files={"file": ("slip.png", data, content_type)},
        headers=headers,
    )


def test_upload_slip(client, customer_headers, product, place_order, storage):
    order = place_order(product.id)
    r = upload_slip(client, customer_headers, order["id"])
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Transfer slip uploaded"
    assert body["order"]["transaction_status"] == "pending"
    assert body["order"]["transaction_slip"].endswith(".png")
    assert any(path.startswith(f"slips/order_{order['id']}/") for path in storage.files)


def test_upload_slip_rejects_pdf(client, customer_headers, product, place_order):
    order = place_order(product.id)
    r = upload_slip(client, customer_headers, order["id"], content_type="application/pdf")
    assert r.status_code == 400


def test_upload_slip_not_for_cod(client, customer_headers, product, place_order):
    order = place_order(product.id, payment_type="cash_on_delivery")
    r = upload_slip(client, customer_headers, order["id"])
    assert r.status_code == 400


def test_reupload_after_rejection_returns_to_pending(
    client, session, customer_headers, admin_headers, product, place_order, storage
):
    order = place_order(product.id)
    upload_slip(client, customer_headers, order["id"])
    r = client.post(
        "/api/admin/order/payment-verify",
        json={"order_id": order["id"], "result": "rejected"},
        headers=admin_headers,
    )
    assert r.json()["order"]["status"] == "waiting_payment"

    r = upload_slip(client, customer_headers, order["id"])
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "pending"
    assert r.json()["order"]["transaction_status"] == "pending"
    # the rejected slip is removed from storage
    assert len(storage.removed) == 1


# -------- cancel --------


def test_cancel_unpaid_order_restocks(client, session, customer_headers, product, place_order):
    order = place_order(product.id, quantity=4)

    r = client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "Ordered by mistake"},
        headers=customer_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Order cancelled"
    assert body["order"]["status"] == "cancelled"
    assert body["order"]["is_cancelled"] is True
    assert body["order"]["cancel_reason"] == "Ordered by mistake"

    stored = fetch(session, Product, product.id)
    assert stored.cancellation_count == 4
    assert stored.available_stock == 100


def test_cancel_with_slip_becomes_request(client, session, customer_headers, product, place_order):
    order = place_order(product.id)
    upload_slip(client, customer_headers, order["id"])

    r = client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "Changed my mind"},
        headers=customer_headers,
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Cancellation request sent"
    assert r.json()["order"]["status"] == "req_cancel"

    stored = fetch(session, Order, order["id"])
    assert stored.status_before_cancel_request == "pending"
    # nothing restocked until the shop decides
    assert fetch(session, Product, product.id).cancellation_count == 0

    again = client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "Please"}, headers=customer_headers
    )
    assert again.status_code == 400


def test_cancel_needs_reason(client, customer_headers, product, place_order):
    order = place_order(product.id)
    r = client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "  "}, headers=customer_headers
    )
    assert r.status_code == 422
    assert r.json()["message"] == "Invalid request"


def test_cannot_cancel_shipped_order(client, session, customer_headers, product, place_order):
    order = place_order(product.id)
    stored = fetch(session, Order, order["id"])
    stored.status = "shipped"
    session.add(stored)
    session.commit()

    r = client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "Too late"}, headers=customer_headers
    )
    assert r.status_code == 400


# -------- receive --------


def test_confirm_receive(client, session, customer_headers, product, place_order):
    order = place_order(product.id)

    r = client.post(f"/api/orders/{order['id']}/receive", headers=customer_headers)
    assert r.status_code == 400

    stored = fetch(session, Order, order["id"])
    stored.status = "shipped"
    session.add(stored)
    session.commit()

    r = client.post(f"/api/orders/{order['id']}/receive", headers=customer_headers)
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "delivered"
    assert r.json()["order"]["is_received"] is True
