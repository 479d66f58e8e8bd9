# app/services/order_flow.py
"""
Order status model.

Every rule about which status an order may move to, which back-office
step an order belongs on, and whether a step's action is available lives
here. Functions are pure: they read an Order snapshot and never touch the
database or raise HTTP errors. Services check these predicates and
decide how to fail.
"""
from dataclasses import dataclass
from enum import Enum

from app.models.order import Order


class OrderStatus(str, Enum):
    WAITING_PAYMENT = "waiting_payment"
    PENDING = "pending"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    REQ_CANCEL = "req_cancel"
    REFUNDING = "refunding"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class Step(str, Enum):
    """Back-office order pages, in the order an admin walks through them."""

    CHECKORDER = "checkorder"
    SHIPPING = "shipping"
    SUMMARY = "summary"
    SHIPPED = "shipped"
    REFUNDING = "refunding"
    REQ_CANCEL = "req_cancel"


PAYMENT_BANK_TRANSFER = "bank_transfer"
PAYMENT_COD = "cash_on_delivery"

S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.WAITING_PAYMENT: frozenset({S.PENDING, S.REQ_CANCEL, S.CANCELLED}),
    S.PENDING: frozenset(
        {S.WAITING_PAYMENT, S.PREPARING, S.REQ_CANCEL, S.CANCELLED, S.REFUNDING}
    ),
    S.PREPARING: frozenset({S.SHIPPED, S.REQ_CANCEL, S.CANCELLED, S.REFUNDING}),
    S.REQ_CANCEL: frozenset(
        {S.WAITING_PAYMENT, S.PENDING, S.PREPARING, S.CANCELLED, S.REFUNDING}
    ),
    S.SHIPPED: frozenset({S.DELIVERED}),
    S.REFUNDING: frozenset({S.REFUNDED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s.value for s, targets in TRANSITIONS.items() if not targets)

# Statuses an order may be in while it is on its way out
CANCELLATION_ROUTE = frozenset({S.CANCELLED.value, S.REFUNDING.value, S.REFUNDED.value})

# All six must be filled before an order can be marked shipped
REQUIRED_SHIPPING_FIELDS = (
    "shipping_method",
    "shipping_provider",
    "shipping_date",
    "vehicle_type",
    "driver_name",
    "driver_phone",
)


@dataclass(frozen=True)
class StepState:
    """
    What the back office may do with an order on a given step.

    back_step / next_step of None mean "the order list" and
    "no further step" respectively.
    """

    step: Step
    next_enabled: bool
    button_label: str
    back_step: Step | None
    next_step: Step | None
    special_action: bool
    savable: bool
    cancel_enabled: bool
    valid: bool


def can_transition(current: str, target: str) -> bool:
    try:
        return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return False


def is_terminal(order: Order) -> bool:
    return order.status in TERMINAL_STATUSES


def has_active_slip(order: Order) -> bool:
    """A transfer slip is attached and has not been rejected."""
    return bool(order.transaction_slip) and order.transaction_status != "rejected"


def route_step(order: Order) -> Step:
    if order.status in (S.REFUNDING, S.REFUNDED):
        return Step.REFUNDING
    if order.status == S.REQ_CANCEL:
        return Step.REQ_CANCEL
    return Step.CHECKORDER


def can_cancel(order: Order) -> bool:
    if order.status in (S.SHIPPED, S.DELIVERED):
        return False
    return order.status not in CANCELLATION_ROUTE


def cancellation_target(order: Order) -> OrderStatus:
    """
    Where a cancellation sends the order.

    Money already sent (a slip that was not rejected) must be paid back,
    so those orders go through refunding instead of straight to cancelled.
    """
    if has_active_slip(order):
        return S.REFUNDING
    return S.CANCELLED


def shipping_fields_complete(order: Order) -> bool:
    for field in REQUIRED_SHIPPING_FIELDS:
        value = getattr(order, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return False
    return True


def payment_ready_for_shipping(order: Order) -> bool:
    if order.payment_type == PAYMENT_COD:
        return order.status != S.WAITING_PAYMENT
    return (
        bool(order.transaction_slip)
        and order.is_payment_checked
        and order.transaction_status == "confirmed"
        and order.status == S.PREPARING
    )


def can_confirm_shipped(order: Order) -> bool:
    return payment_ready_for_shipping(order) and shipping_fields_complete(order)


def refund_step_valid(order: Order) -> bool:
    return order.status != S.REFUNDED or bool(order.refund_slip) or order.is_refunded


def can_complete_refund(order: Order) -> bool:
    return order.status == S.REFUNDING and bool(order.refund_slip) and order.is_refunded


def needs_payment_check(order: Order) -> bool:
    return (
        order.payment_type == PAYMENT_BANK_TRANSFER
        and order.status == S.PENDING
        and bool(order.transaction_slip)
        and order.transaction_status == "pending"
    )


def can_confirm_order(order: Order) -> bool:
    return (
        not order.is_confirmed
        and order.status == S.PENDING
        and (order.payment_type == PAYMENT_COD or order.transaction_status == "confirmed")
    )


def step_valid(order: Order, step: Step) -> bool:
    if step == Step.SHIPPED:
        return can_confirm_shipped(order)
    if step == Step.REFUNDING:
        return refund_step_valid(order)
    return True


def evaluate_step(order: Order, step: Step) -> StepState:
    """
    Resolve the back-office controls for `order` shown on `step`.

    Cancelled and refund-route orders short-circuit every normal step:
    only the refund page stays actionable for them.
    """
    cancel_enabled = can_cancel(order)
    valid = step_valid(order, step)

    def state(**kwargs) -> StepState:
        kwargs.setdefault("special_action", False)
        kwargs.setdefault("savable", False)
        kwargs.setdefault("cancel_enabled", False)
        return StepState(step=step, valid=valid, **kwargs)

    if step == Step.REFUNDING:
        if order.status == S.REFUNDING:
            return state(
                next_enabled=can_complete_refund(order),
                button_label="Confirm refund",
                back_step=Step.CHECKORDER,
                next_step=Step.REFUNDING,
                savable=True,
            )
        return state(
            next_enabled=True,
            button_label="Manage order",
            back_step=None,
            next_step=None,
        )

    if step == Step.REQ_CANCEL and order.status == S.REQ_CANCEL:
        return state(
            next_enabled=True,
            button_label="Manage order",
            back_step=None,
            next_step=None,
            special_action=True,
        )

    if order.status in CANCELLATION_ROUTE or order.is_cancelled:
        refund_pending = order.status == S.REFUNDING and order.is_cancelled
        return state(
            next_enabled=refund_pending,
            button_label="Process refund" if refund_pending else "Order cancelled",
            back_step=None,
            next_step=Step.REFUNDING if refund_pending else Step.CHECKORDER,
        )

    if step == Step.CHECKORDER:
        payment_check = needs_payment_check(order)
        awaiting_confirm = not order.is_confirmed and (
            (not payment_check and order.status != S.WAITING_PAYMENT)
            or order.payment_type == PAYMENT_COD
        )
        return state(
            next_enabled=True,
            button_label="Confirm order" if awaiting_confirm else "Next",
            back_step=None,
            next_step=Step.SHIPPING,
            special_action=payment_check,
            savable=can_confirm_order(order),
            cancel_enabled=cancel_enabled,
        )

    if step == Step.SHIPPING:
        return state(
            next_enabled=True,
            button_label="Next",
            back_step=Step.CHECKORDER,
            next_step=Step.SUMMARY,
            savable=True,
            cancel_enabled=cancel_enabled,
        )

    if step == Step.SUMMARY:
        return state(
            next_enabled=True,
            button_label="Next",
            back_step=Step.SHIPPING,
            next_step=Step.SHIPPED,
            cancel_enabled=cancel_enabled,
        )

    if step == Step.SHIPPED:
        if order.status == S.PREPARING:
            return state(
                next_enabled=True,
                button_label="Confirm shipment",
                back_step=Step.SUMMARY,
                next_step=Step.SHIPPED,
                savable=True,
                cancel_enabled=cancel_enabled,
            )
        return state(
            next_enabled=True,
            button_label="Manage order",
            back_step=Step.SUMMARY,
            next_step=None,
            cancel_enabled=cancel_enabled,
        )

    # req_cancel step opened for an order that is no longer in req_cancel
    return state(
        next_enabled=True,
        button_label="Manage order",
        back_step=None,
        next_step=None,
    )
