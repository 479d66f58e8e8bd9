# app/models/product.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Category(SQLModel, table=True):
    """
    Catalog category.

    Three-level tree: main (parent_id NULL) -> sub -> child.
    """

    __tablename__ = "categories"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(max_length=100)

    parent_id: int | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Stock uses the perpetual inventory formula:
        available = quantity - total_sales + cancellation_count
    """

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)

    category_id: int | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name",
    )
    brand: str | None = Field(default=None, max_length=100)
    description: str | None = None
    unit: str = Field(
        max_length=30,
        description="Selling unit, e.g. bag, sheet, piece",
    )

    quantity: int = Field(
        default=0,
        ge=0,
        description="Base stock received",
    )

    sale_cost: float = Field(default=0.0, ge=0, description="Unit cost")
    sale_price: float = Field(gt=0, description="Unit selling price (VAT inclusive)")
    discount_price: float | None = Field(
        default=None,
        description="Promotional price; wins over sale_price when set",
    )

    reorder_point: int = Field(default=0, ge=0)

    visibility: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    image_url: str | None = None
    dimensions: str | None = None
    material: str | None = None

    total_sales: int = Field(default=0, ge=0)
    cancellation_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    @property
    def available_stock(self) -> int:
        return self.quantity - self.total_sales + self.cancellation_count

    @property
    def effective_price(self) -> float:
        if self.discount_price is not None:
            return self.discount_price
        return self.sale_price
