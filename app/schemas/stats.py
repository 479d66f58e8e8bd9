# app/schemas/stats.py
from datetime import date, datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.schemas.order import OrderStatusValue, PaymentType, TransactionStatus


class DashboardSummary(SQLModel):
    """
    Headline numbers at the top of the dashboard.

    - sales_today: revenue of today's orders that are not cancelled/refunded
    - new_orders: orders still waiting for the shop (pending / waiting_payment)
    - total_stock: sum of available stock over all products
    """
    model_config = ConfigDict(extra="forbid")

    sales_today: float
    new_orders: int
    total_stock: int
    total_customers: int
    total_orders: int
    total_revenue: float


class DailySales(SQLModel):
    """
    Revenue per day for a given month/year.
    """
    model_config = ConfigDict(extra="forbid")

    date: date
    total_revenue: float
    order_count: int


class TopProduct(SQLModel):
    """
    Aggregated stats for top-selling products.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: int
    name: str
    total_quantity: int
    total_revenue: float


class LatestOrderSummary(SQLModel):
    """
    Lightweight info for last N orders.
    """
    model_config = ConfigDict(extra="forbid")

    id: int
    order_date: datetime
    user_id: int
    customer_name: str | None
    total_amount: float
    status: OrderStatusValue


class LowStockProduct(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    name: str
    unit: str
    available_stock: int
    reorder_point: int


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    summary: DashboardSummary
    daily_sales: list[DailySales]
    top_products: list[TopProduct]
    latest_orders: list[LatestOrderSummary]
    low_stock: list[LowStockProduct]


class DailyReportRow(SQLModel):
    order_id: int
    order_date: datetime
    customer_name: str
    total_amount: float
    payment_type: PaymentType
    status: OrderStatusValue
    item_count: int
    transaction_slip: str | None
    is_payment_checked: bool
    transaction_status: TransactionStatus | None


class DailyReport(SQLModel):
    """
    Orders placed on one calendar day, with totals per status.
    """

    date: date
    orders: list[DailyReportRow]
    order_count: int
    total_amount: float
    status_counts: dict[str, int]


class InventoryReportRow(SQLModel):
    product_id: int
    name: str
    brand: str | None
    unit: str
    category_id: int | None
    quantity: int
    total_sales: int
    cancellation_count: int
    available_stock: int
    reorder_point: int
    sale_cost: float
    sale_price: float
    stock_value: float
    needs_reorder: bool


class InventoryReport(SQLModel):
    generated_at: datetime
    products: list[InventoryReportRow]
    total_stock_value: float
    reorder_count: int
