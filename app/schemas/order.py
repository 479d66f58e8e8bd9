# app/schemas/order.py
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatusValue = Literal[
    "waiting_payment",
    "pending",
    "preparing",
    "shipped",
    "delivered",
    "req_cancel",
    "refunding",
    "refunded",
    "cancelled",
]
PaymentType = Literal["bank_transfer", "cash_on_delivery"]
TransactionStatus = Literal["pending", "confirmed", "rejected"]
StepName = Literal["checkorder", "shipping", "summary", "shipped", "refunding", "req_cancel"]


def _normalize_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class CheckoutRequest(SQLModel):
    """
    Payload for creating an order from the current cart.

    User provides:
      - address_id (one of the user's own addresses)
      - payment_type
      - customer_note (optional)

    Backend derives:
      - items and prices from the cart and live product data
      - fees and VAT from website settings
      - status = 'pending'
    """

    model_config = ConfigDict(extra="forbid")

    address_id: int
    payment_type: PaymentType
    customer_note: str | None = Field(default=None, max_length=1000)

    @field_validator("customer_note")
    @classmethod
    def normalize_note(cls, v: str | None) -> str | None:
        return _normalize_optional(v)


class CancelRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reason: str = Field(max_length=500)

    @field_validator("reason")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be empty")
        return v


class OrderItemRead(SQLModel):
    """
    Snapshot of a single purchased product.
    """

    id: int
    product_id: int | None
    quantity: int
    name: str
    brand: str | None
    unit: str | None
    image_url: str | None
    sale_price: float
    discount_price: float | None
    price_paid_per_item: float
    subtotal: float


class OrderAdminItemRead(OrderItemRead):
    sale_cost: float


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: int
    user_id: int
    order_date: datetime
    status: OrderStatusValue
    payment_type: PaymentType
    transaction_slip: str | None
    transaction_status: TransactionStatus | None
    is_confirmed: bool
    shipping_method: str | None
    shipping_provider: str | None
    shipping_date: datetime | None
    tracking_number: str | None
    tracking_url: str | None
    customer_note: str | None
    is_cancelled: bool
    cancel_reason: str | None
    refund_slip: str | None
    is_refunded: bool
    is_received: bool
    subtotal: float
    shipping_fee: float
    cod_fee: float
    total_amount: float
    current_vat: float


class OrderWithItemsRead(OrderRead):
    """
    Customer view of an order including items and the delivery address.
    """

    transaction_date: datetime | None
    received_at: datetime | None
    address_1: str
    address_2: str | None
    sub_district: str
    district: str
    province: str
    zip_code: str
    phone: str | None
    vehicle_type: str | None
    driver_name: str | None
    driver_phone: str | None
    cancel_date: datetime | None
    refund_at: datetime | None
    items: list[OrderItemRead]


class OrderAdminRead(OrderWithItemsRead):
    """
    Back-office view: every column of the order plus items with cost.
    """

    is_payment_checked: bool
    checked_by: int | None
    checked_at: datetime | None
    confirmed_by: int | None
    confirmed_at: datetime | None
    shipping_cost: float | None
    internal_note: str | None
    is_auto_update_status: bool
    shipping_updated_by: int | None
    shipping_updated_at: datetime | None
    cancel_by: int | None
    status_before_cancel_request: str | None
    refund_by: int | None
    address_id: int | None
    update_by: int | None
    update_at: datetime | None
    customer_username: str | None = None
    customer_name: str | None = None
    items: list[OrderAdminItemRead]


class OrderAdminListItem(OrderRead):
    customer_username: str | None = None
    customer_name: str | None = None
    item_count: int = 0


class OrderAdminPage(SQLModel):
    items: list[OrderAdminListItem]
    total: int
    skip: int
    limit: int


class OrderActionResponse(SQLModel):
    """Body returned by every order action endpoint."""

    message: str
    order: OrderAdminRead


class CustomerOrderActionResponse(SQLModel):
    message: str
    order: OrderWithItemsRead


# ---- Admin payloads ----


class OrderIdPayload(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: int


class PaymentVerifyRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: int
    result: Literal["confirmed", "rejected"]


class ShippingUpdateRequest(SQLModel):
    """
    Shipping details for an order being prepared.

    Empty strings are stored as null so a cleared form field clears the column.
    """

    model_config = ConfigDict(extra="forbid")

    order_id: int
    shipping_method: str | None = None
    shipping_provider: str | None = None
    shipping_date: datetime | None = None
    shipping_cost: float | None = Field(default=None, ge=0)
    vehicle_type: str | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    internal_note: str | None = None
    customer_note: str | None = None
    is_auto_update_status: bool | None = None

    @field_validator("shipping_date", mode="before")
    @classmethod
    def empty_date(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(
        "shipping_method",
        "shipping_provider",
        "vehicle_type",
        "driver_name",
        "driver_phone",
        "tracking_number",
        "tracking_url",
        "internal_note",
        "customer_note",
    )
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        return _normalize_optional(v)


class OrderStatusUpdate(SQLModel):
    """
    Admin payload for the generic status change.
    """

    model_config = ConfigDict(extra="forbid")

    order_id: int
    status: OrderStatusValue


class AdminCancelRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: int
    reason: str = Field(max_length=500)

    @field_validator("reason")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be empty")
        return v


class CancelReviewRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: int
    approve: bool
    note: str | None = Field(default=None, max_length=500)

    @field_validator("note")
    @classmethod
    def normalize_note(cls, v: str | None) -> str | None:
        return _normalize_optional(v)


# ---- Step evaluation ----


class StepStateRead(SQLModel):
    order_id: int
    status: OrderStatusValue
    step: StepName
    next_enabled: bool
    button_label: str
    back_step: StepName | None
    next_step: StepName | None
    special_action: bool
    savable: bool
    cancel_enabled: bool
    valid: bool


class NextStepRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_ids: list[int] = Field(min_length=1, max_length=200)


class NextStepRead(SQLModel):
    order_id: int
    status: OrderStatusValue
    step: StepName


class AutoCancelResult(SQLModel):
    message: str
    cancelled_order_ids: list[int]
