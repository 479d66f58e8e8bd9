# app/schemas/product.py
from datetime import datetime

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - quantity is the opening stock; later receipts go through add-stock.
    - discount_price, when given, must be below sale_price.
    """

    model_config = ConfigDict(extra="forbid")

    category_id: int | None = None
    name: str = Field(max_length=255)
    brand: str | None = Field(default=None, max_length=100)
    description: str | None = None
    unit: str = Field(max_length=30)
    quantity: int = Field(default=0, ge=0)
    sale_cost: float = Field(default=0.0, ge=0)
    sale_price: float = Field(gt=0)
    discount_price: float | None = Field(default=None, gt=0)
    reorder_point: int = Field(default=0, ge=0)
    visibility: bool = True
    dimensions: str | None = None
    material: str | None = None

    @field_validator("name", "unit")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("brand", "description", "dimensions", "material")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.discount_price is not None and self.discount_price >= self.sale_price:
            raise ValueError("discount_price must be lower than sale_price")
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional; send discount_price=null to clear a promotion.
    """

    model_config = ConfigDict(extra="forbid")

    category_id: int | None = None
    name: str | None = Field(default=None, max_length=255)
    brand: str | None = Field(default=None, max_length=100)
    description: str | None = None
    unit: str | None = Field(default=None, max_length=30)
    sale_cost: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, gt=0)
    discount_price: float | None = Field(default=None, gt=0)
    reorder_point: int | None = Field(default=None, ge=0)
    visibility: bool | None = None
    dimensions: str | None = None
    material: str | None = None

    @field_validator("name", "unit")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class StockAdd(SQLModel):
    """Goods received: increases the base quantity."""

    model_config = ConfigDict(extra="forbid")

    amount: int = Field(gt=0)


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: int
    category_id: int | None
    name: str
    brand: str | None
    description: str | None
    unit: str
    sale_price: float
    discount_price: float | None
    effective_price: float
    visibility: bool
    image_url: str | None
    dimensions: str | None
    material: str | None
    available_stock: int
    created_at: datetime


class ProductAdminRead(ProductRead):
    """
    Back-office view with cost and stock counters.
    """

    quantity: int
    sale_cost: float
    reorder_point: int
    total_sales: int
    cancellation_count: int


class ProductListResponse(SQLModel):
    items: list[ProductRead]
    total: int
    skip: int
    limit: int


class ProductAdminListResponse(ProductListResponse):
    items: list[ProductAdminRead]


class CategoryCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    parent_id: int | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    parent_id: int | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryRead(SQLModel):
    id: int
    name: str
    parent_id: int | None


class CategoryTree(CategoryRead):
    """Category with its nested children (main -> sub -> child)."""

    children: list["CategoryTree"] = []


class TopCategory(SQLModel):
    category_id: int
    name: str
    total_quantity: int


class TopSellingFeed(SQLModel):
    """Storefront home page: best-selling categories and products."""

    top_categories: list[TopCategory]
    products: list[ProductRead]
