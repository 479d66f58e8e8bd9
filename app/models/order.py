# app/models/order.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Status lifecycle is owned by app.services.order_flow; nothing else
    should assign `status` without going through its transition table.

    status:
      waiting_payment | pending | preparing | shipped | delivered |
      req_cancel | refunding | refunded | cancelled
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    order_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Checkout timestamp (UTC)",
    )

    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # ---- Payment ----

    # bank_transfer | cash_on_delivery
    payment_type: str = Field(index=True)

    transaction_slip: str | None = Field(
        default=None,
        description="Public URL of the uploaded transfer slip",
    )
    transaction_date: datetime | None = None
    # pending | confirmed | rejected (null until a slip exists)
    transaction_status: str | None = None

    is_payment_checked: bool = False
    checked_by: int | None = None
    checked_at: datetime | None = None

    is_confirmed: bool = False
    confirmed_by: int | None = None
    confirmed_at: datetime | None = None

    # ---- Shipping ----

    shipping_method: str | None = None
    shipping_provider: str | None = None
    shipping_date: datetime | None = None
    shipping_cost: float | None = None
    vehicle_type: str | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    internal_note: str | None = None
    customer_note: str | None = None
    is_auto_update_status: bool = False
    shipping_updated_by: int | None = None
    shipping_updated_at: datetime | None = None

    # ---- Cancellation ----

    is_cancelled: bool = False
    cancel_reason: str | None = None
    cancel_by: int | None = None
    cancel_date: datetime | None = None
    status_before_cancel_request: str | None = None

    # ---- Refund ----

    refund_slip: str | None = None
    is_refunded: bool = False
    refund_by: int | None = None
    refund_at: datetime | None = None

    # ---- Receive ----

    is_received: bool = False
    received_at: datetime | None = None

    # ---- Address snapshot ----

    address_id: int | None = Field(default=None, foreign_key="addresses.id")
    address_1: str
    address_2: str | None = None
    sub_district: str
    district: str
    province: str
    zip_code: str
    phone: str | None = None

    # ---- Money ----

    subtotal: float = Field(default=0.0, description="Sum of line subtotals")
    shipping_fee: float = 0.0
    cod_fee: float = 0.0
    total_amount: float = Field(
        description="Final amount for this order (VAT inclusive)",
    )
    current_vat: float = Field(
        default=0.0,
        description="VAT rate (percent) in force at checkout",
    )

    # ---- Audit ----

    update_by: int | None = None
    update_at: datetime | None = None


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    Product fields are snapshotted at checkout so later catalog edits
    do not change what the customer bought.
    """

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: int | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    name: str
    brand: str | None = None
    unit: str | None = None
    image_url: str | None = None
    sale_cost: float = 0.0
    sale_price: float
    discount_price: float | None = None

    @property
    def price_paid_per_item(self) -> float:
        if self.discount_price is not None:
            return self.discount_price
        return self.sale_price

    @property
    def subtotal(self) -> float:
        return self.price_paid_per_item * self.quantity
