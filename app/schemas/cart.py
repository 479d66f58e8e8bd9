# app/schemas/cart.py
from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.order import PaymentType


class CartItemCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """New absolute quantity for a line already in the cart."""

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class CartLineRead(SQLModel):
    """
    One cart line joined with the live product.

    `price_paid_per_item` is the discount price when the product has one,
    else the sale price; nothing is snapshotted until checkout.
    """

    id: int
    product_id: int
    quantity: int
    name: str
    brand: str | None = None
    unit: str
    image_url: str | None = None
    sale_price: float
    discount_price: float | None = None
    price_paid_per_item: float
    available_stock: int
    line_total: float


class CartSummary(SQLModel):
    items: list[CartLineRead]
    total_quantity: int
    total_price: float


class CartIssue(SQLModel):
    product_id: int
    reason: str


class CheckoutPreview(SQLModel):
    """
    Amounts checkout would charge for the current cart.

    Lines listed in `issues` are left out of the subtotal.
    `maintenance_message` is set while checkout is closed.
    """

    payment_type: PaymentType
    subtotal: float
    shipping_fee: float
    cod_fee: float
    total_amount: float
    vat_rate: float
    issues: list[CartIssue]
    maintenance_message: str | None = None
    can_checkout: bool
