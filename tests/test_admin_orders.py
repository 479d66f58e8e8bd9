# tests/test_admin_orders.py
from datetime import datetime, timedelta, timezone

import pytest

from app.models.order import Order
from app.models.product import Product

from tests.factories import PNG_BYTES, auth_headers, create_level, create_user, fetch

SHIPPING = {
    "shipping_method": "truck",
    "shipping_provider": "own fleet",
    "shipping_date": "2026-01-05T09:00:00Z",
    "vehicle_type": "6-wheel",
    "driver_name": "Anan",
    "driver_phone": "0899999999",
}


def upload_slip(client, headers, order_id):
    r = client.post(
        f"/api/orders/{order_id}/transaction-slip",
        files={"file": ("slip.png", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert r.status_code == 200, r.text


def verify(client, headers, order_id, result="confirmed"):
    return client.post(
        "/api/admin/order/payment-verify",
        json={"order_id": order_id, "result": result},
        headers=headers,
    )


def set_status(client, headers, order_id, status):
    return client.patch(
        "/api/admin/order/status",
        json={"order_id": order_id, "status": status},
        headers=headers,
    )


@pytest.fixture
def paid_order(client, customer_headers, admin_headers, product, place_order):
    """Bank-transfer order with a confirmed slip, still pending."""
    order = place_order(product.id)
    upload_slip(client, customer_headers, order["id"])
    r = verify(client, admin_headers, order["id"])
    assert r.status_code == 200, r.text
    return r.json()["order"]


# -------- permissions --------


def test_customer_cannot_reach_back_office(client, customer_headers):
    r = client.get("/api/admin/order", headers=customer_headers)
    assert r.status_code == 403


def test_order_manager_level_is_enough(client, session):
    create_level(session, 10, "Order Staff", order_mgr=True)
    staff = create_user(session, "staff", access_level=10)
    r = client.get("/api/admin/order", headers=auth_headers(staff))
    assert r.status_code == 200


# -------- listing --------


def test_list_with_filters(client, admin_headers, customer_headers, session, product, place_order):
    first = place_order(product.id)
    second = place_order(product.id, payment_type="cash_on_delivery")
    upload_slip(client, customer_headers, first["id"])

    page = client.get("/api/admin/order", headers=admin_headers).json()
    assert page["total"] == 2
    assert [o["id"] for o in page["items"]] == [second["id"], first["id"]]
    assert page["items"][0]["customer_username"] == "somchai"
    assert page["items"][0]["item_count"] == 1

    cod = client.get(
        "/api/admin/order", params={"payment_type": "cash_on_delivery"}, headers=admin_headers
    ).json()
    assert [o["id"] for o in cod["items"]] == [second["id"]]

    with_slip = client.get(
        "/api/admin/order", params={"has_slip": "true"}, headers=admin_headers
    ).json()
    assert [o["id"] for o in with_slip["items"]] == [first["id"]]

    by_status = client.get(
        "/api/admin/order", params=[("status", "cancelled"), ("status", "pending")],
        headers=admin_headers,
    ).json()
    assert by_status["total"] == 2


def test_get_order_includes_cost(client, admin_headers, product, place_order):
    order = place_order(product.id)
    detail = client.get(f"/api/admin/order/{order['id']}", headers=admin_headers).json()
    assert detail["items"][0]["sale_cost"] == 120.0
    assert detail["customer_name"] == "Somchai"


def test_unknown_order(client, admin_headers):
    r = client.get("/api/admin/order/999", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "Order not found"


# -------- steps --------


def test_step_state_and_next_step(client, admin_headers, customer_headers, product, place_order):
    order = place_order(product.id)
    upload_slip(client, customer_headers, order["id"])

    r = client.get(
        f"/api/admin/order/{order['id']}/step",
        params={"controller": "checkorder"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    state = r.json()
    assert state["special_action"] is True
    assert state["next_step"] == "shipping"
    assert state["back_step"] is None

    r = client.post(
        "/api/admin/order/next-step", json={"order_ids": [order["id"], 404]}, headers=admin_headers
    )
    assert r.json() == [{"order_id": order["id"], "status": "pending", "step": "checkorder"}]


def test_step_rejects_unknown_controller(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = client.get(
        f"/api/admin/order/{order['id']}/step",
        params={"controller": "warehouse"},
        headers=admin_headers,
    )
    assert r.status_code == 422


# -------- payment / confirm --------


def test_verify_requires_pending_slip(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = verify(client, admin_headers, order["id"])
    assert r.status_code == 400


def test_confirm_paid_order(client, admin, admin_headers, paid_order):
    assert paid_order["is_payment_checked"] is True
    assert paid_order["transaction_status"] == "confirmed"
    assert paid_order["checked_by"] == admin.id

    r = client.patch(
        "/api/admin/order/confirm-order", json={"order_id": paid_order["id"]}, headers=admin_headers
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Order confirmed"
    assert body["order"]["status"] == "preparing"
    assert body["order"]["is_confirmed"] is True
    assert body["order"]["confirmed_by"] == admin.id


def test_cannot_confirm_unpaid_transfer(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = client.patch(
        "/api/admin/order/confirm-order", json={"order_id": order["id"]}, headers=admin_headers
    )
    assert r.status_code == 400


def test_cod_confirm_ship_deliver(client, admin_headers, customer_headers, product, place_order):
    order = place_order(product.id, payment_type="cash_on_delivery")
    oid = order["id"]

    assert client.patch(
        "/api/admin/order/confirm-order", json={"order_id": oid}, headers=admin_headers
    ).status_code == 200

    # shipping details incomplete
    r = set_status(client, admin_headers, oid, "shipped")
    assert r.status_code == 400

    r = client.patch(
        "/api/admin/order/shipping-update", json={"order_id": oid, **SHIPPING}, headers=admin_headers
    )
    assert r.status_code == 200, r.text
    assert r.json()["order"]["driver_name"] == "Anan"

    r = set_status(client, admin_headers, oid, "shipped")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "shipped"

    r = client.post(f"/api/orders/{oid}/receive", headers=customer_headers)
    assert r.json()["order"]["status"] == "delivered"


def test_shipping_update_only_while_preparing(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = client.patch(
        "/api/admin/order/shipping-update",
        json={"order_id": order["id"], **SHIPPING},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_shipping_update_clears_with_empty_string(client, admin_headers, product, place_order):
    order = place_order(product.id, payment_type="cash_on_delivery")
    oid = order["id"]
    client.patch("/api/admin/order/confirm-order", json={"order_id": oid}, headers=admin_headers)
    client.patch(
        "/api/admin/order/shipping-update", json={"order_id": oid, **SHIPPING}, headers=admin_headers
    )

    r = client.patch(
        "/api/admin/order/shipping-update",
        json={"order_id": oid, "driver_name": "", "shipping_date": ""},
        headers=admin_headers,
    )
    order = r.json()["order"]
    assert order["driver_name"] is None
    assert order["shipping_date"] is None
    assert order["vehicle_type"] == "6-wheel"


# -------- generic status --------


def test_status_rejects_table_violations(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = set_status(client, admin_headers, order["id"], "delivered")
    assert r.status_code == 400
    assert "Invalid status transition" in r.json()["message"]


def test_status_same_value_is_noop(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = set_status(client, admin_headers, order["id"], "pending")
    assert r.status_code == 200
    assert r.json()["message"] == "Status unchanged"


def test_status_cancel_must_match_route(client, admin_headers, paid_order):
    r = set_status(client, admin_headers, paid_order["id"], "cancelled")
    assert r.status_code == 400

    r = set_status(client, admin_headers, paid_order["id"], "refunding")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "refunding"


def test_admin_cannot_raise_cancel_request(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = set_status(client, admin_headers, order["id"], "req_cancel")
    assert r.status_code == 400


# -------- cancellation --------


def test_admin_cancel_unpaid(client, session, admin, admin_headers, product, place_order):
    order = place_order(product.id, quantity=3)
    r = client.patch(
        "/api/admin/order/req-cancel-order",
        json={"order_id": order["id"], "reason": "Out of delivery area"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()["order"]
    assert body["status"] == "cancelled"
    assert body["cancel_by"] == admin.id
    assert fetch(session, Product, product.id).cancellation_count == 3


def test_admin_cancel_paid_goes_to_refund(client, session, admin_headers, paid_order, storage):
    oid = paid_order["id"]
    r = client.patch(
        "/api/admin/order/req-cancel-order",
        json={"order_id": oid, "reason": "Supplier shortage"},
        headers=admin_headers,
    )
    assert r.json()["order"]["status"] == "refunding"

    # refund cannot complete before a slip is attached
    r = set_status(client, admin_headers, oid, "refunded")
    assert r.status_code == 400

    r = client.patch(
        f"/api/admin/order/{oid}/refund-slip",
        files={"file": ("refund.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["order"]["is_refunded"] is True
    assert any(path.startswith(f"refunds/order_{oid}/") for path in storage.files)

    r = set_status(client, admin_headers, oid, "refunded")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "refunded"


def test_refund_slip_only_while_refunding(client, admin_headers, paid_order):
    r = client.patch(
        f"/api/admin/order/{paid_order['id']}/refund-slip",
        files={"file": ("refund.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_cancel_reason_required(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = client.patch(
        "/api/admin/order/req-cancel-order",
        json={"order_id": order["id"], "reason": ""},
        headers=admin_headers,
    )
    assert r.status_code == 422


def test_cancel_request_declined_restores_status(
    client, session, admin_headers, customer_headers, paid_order
):
    oid = paid_order["id"]
    client.post(f"/api/orders/{oid}/cancel", json={"reason": "Found cheaper"}, headers=customer_headers)

    r = client.patch(
        "/api/admin/order/cancel-review",
        json={"order_id": oid, "approve": False, "note": "Already packed"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Cancellation request declined"
    assert body["order"]["status"] == "pending"
    assert body["order"]["status_before_cancel_request"] is None
    assert body["order"]["internal_note"] == "Already packed"


def test_cancel_request_approved_moves_to_refund(
    client, session, admin_headers, customer_headers, product, paid_order
):
    oid = paid_order["id"]
    client.post(f"/api/orders/{oid}/cancel", json={"reason": "Found cheaper"}, headers=customer_headers)

    r = client.patch(
        "/api/admin/order/cancel-review",
        json={"order_id": oid, "approve": True},
        headers=admin_headers,
    )
    assert r.json()["message"] == "Order moved to refund"
    assert r.json()["order"]["status"] == "refunding"
    assert fetch(session, Product, product.id).cancellation_count == 2


def test_rejected_slip_during_cancel_request(
    client, session, admin_headers, customer_headers, product, place_order
):
    order = place_order(product.id)
    oid = order["id"]
    upload_slip(client, customer_headers, oid)
    client.post(f"/api/orders/{oid}/cancel", json={"reason": "Wrong item"}, headers=customer_headers)

    r = verify(client, admin_headers, oid, "rejected")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "req_cancel"
    assert r.json()["order"]["status_before_cancel_request"] == "waiting_payment"

    # no money received: approving cancels outright
    r = client.patch(
        "/api/admin/order/cancel-review", json={"order_id": oid, "approve": True},
        headers=admin_headers,
    )
    assert r.json()["order"]["status"] == "cancelled"


def test_review_requires_open_request(client, admin_headers, product, place_order):
    order = place_order(product.id)
    r = client.patch(
        "/api/admin/order/cancel-review",
        json={"order_id": order["id"], "approve": True},
        headers=admin_headers,
    )
    assert r.status_code == 400


# -------- delete --------


def test_delete_open_order_returns_stock(client, session, admin_headers, product, place_order):
    order = place_order(product.id, quantity=5)
    r = client.delete(f"/api/admin/order/{order['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert fetch(session, Order, order["id"]) is None
    assert fetch(session, Product, product.id).available_stock == 100


# -------- auto-cancel --------


def age_order(session, order_id, hours):
    stored = fetch(session, Order, order_id)
    stored.order_date = datetime.now(timezone.utc) - timedelta(hours=hours)
    session.add(stored)
    session.commit()


def test_auto_cancel_requires_secret(client):
    assert client.post("/api/cron/auto-cancel").status_code == 401
    r = client.post("/api/cron/auto-cancel", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_auto_cancel_stale_unpaid_orders(
    client, session, customer_headers, product, place_order
):
    stale = place_order(product.id, quantity=1)
    fresh = place_order(product.id, quantity=1)
    with_slip = place_order(product.id, quantity=1)
    cod = place_order(product.id, quantity=1, payment_type="cash_on_delivery")
    upload_slip(client, customer_headers, with_slip["id"])

    for order in (stale, with_slip, cod):
        age_order(session, order["id"], hours=30)
    age_order(session, fresh["id"], hours=2)

    r = client.post(
        "/api/cron/auto-cancel", headers={"Authorization": "Bearer cron-test-secret"}
    )
    assert r.status_code == 200
    assert r.json()["cancelled_order_ids"] == [stale["id"]]

    cancelled = fetch(session, Order, stale["id"])
    assert cancelled.status == "cancelled"
    assert cancelled.cancel_by is None
    assert fetch(session, Product, product.id).cancellation_count == 1


def test_auto_cancel_after_rejected_slip(
    client, session, admin_headers, customer_headers, product, place_order
):
    order = place_order(product.id, quantity=2)
    upload_slip(client, customer_headers, order["id"])
    assert verify(client, admin_headers, order["id"], result="rejected").status_code == 200

    stored = fetch(session, Order, order["id"])
    assert stored.status == "waiting_payment"
    stored.checked_at = datetime.now(timezone.utc) - timedelta(hours=500)
    session.add(stored)
    session.commit()

    r = client.get(
        "/api/cron/auto-cancel", headers={"Authorization": "Bearer cron-test-secret"}
    )
    assert r.status_code == 200, r.text
    assert r.json()["cancelled_order_ids"] == [order["id"]]
    assert fetch(session, Order, order["id"]).status == "cancelled"
    assert fetch(session, Product, product.id).cancellation_count == 2


def test_recently_rejected_slip_is_not_auto_cancelled(
    client, session, admin_headers, customer_headers, product, place_order
):
    order = place_order(product.id)
    upload_slip(client, customer_headers, order["id"])
    verify(client, admin_headers, order["id"], result="rejected")
    age_order(session, order["id"], hours=500)

    r = client.get(
        "/api/cron/auto-cancel", headers={"Authorization": "Bearer cron-test-secret"}
    )
    assert r.json()["cancelled_order_ids"] == []
    assert fetch(session, Order, order["id"]).status == "waiting_payment"


def test_auto_cancel_accepts_get_from_scheduler(client):
    assert client.get("/api/cron/auto-cancel").status_code == 401
    r = client.get(
        "/api/cron/auto-cancel", headers={"Authorization": "Bearer cron-test-secret"}
    )
    assert r.status_code == 200
    assert r.json()["cancelled_order_ids"] == []
