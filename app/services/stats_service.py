# app/services/stats_service.py
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.repositories.product_repo import ProductRepository
from app.repositories.stats_repo import NON_REVENUE_STATUSES, StatsRepository
from app.schemas.stats import (
    AdminDashboardStats,
    DailyReport,
    DailyReportRow,
    DailySales,
    DashboardSummary,
    InventoryReport,
    InventoryReportRow,
    LatestOrderSummary,
    LowStockProduct,
    TopProduct,
)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _as_date(value) -> date:
    # func.date() comes back as a date on Postgres and as text on SQLite
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
        low_stock_limit: int = 10,
    ) -> AdminDashboardStats:
        # Default to current month/year if not provided
        today = datetime.now(timezone.utc).date()
        if year is None:
            year = today.year
        if month is None:
            month = today.month

        if not 1 <= month <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="month must be between 1 and 12",
            )

        today_start, today_end = _day_bounds(today)
        summary = DashboardSummary(
            sales_today=round(self.repo.revenue_between(session, today_start, today_end), 2),
            new_orders=self.repo.count_new_orders(session),
            total_stock=self.repo.total_available_stock(session),
            total_customers=self.repo.count_customers(session),
            total_orders=self.repo.count_orders(session),
            total_revenue=round(self.repo.revenue_between(session), 2),
        )

        # Daily sales for the requested month
        month_start = datetime(year, month, 1, tzinfo=timezone.utc)
        month_end = (
            datetime(year + 1, 1, 1, tzinfo=timezone.utc)
            if month == 12
            else datetime(year, month + 1, 1, tzinfo=timezone.utc)
        )
        daily_sales = [
            DailySales(
                date=_as_date(day),
                total_revenue=float(revenue or 0.0),
                order_count=int(order_count or 0),
            )
            for day, revenue, order_count in self.repo.daily_sales(session, month_start, month_end)
        ]

        top_products = [
            TopProduct(
                product_id=product_id,
                name=name,
                total_quantity=int(total_quantity or 0),
                total_revenue=float(product_revenue or 0.0),
            )
            for product_id, name, total_quantity, product_revenue in self.repo.top_products(
                session, limit=top_n_products
            )
        ]

        latest_orders = [
            LatestOrderSummary(
                id=o.id,
                order_date=o.order_date,
                user_id=o.user_id,
                customer_name=full_name,
                total_amount=o.total_amount,
                status=o.status,
            )
            for o, full_name in self.repo.latest_orders(session, limit=latest_n_orders)
        ]

        low_stock = [
            LowStockProduct(
                product_id=p.id,
                name=p.name,
                unit=p.unit,
                available_stock=p.available_stock,
                reorder_point=p.reorder_point,
            )
            for p in self.repo.low_stock_products(session, limit=low_stock_limit)
        ]

        return AdminDashboardStats(
            summary=summary,
            daily_sales=daily_sales,
            top_products=top_products,
            latest_orders=latest_orders,
            low_stock=low_stock,
        )


class ReportService:
    """
    Back-office reports: orders of a day and the inventory sheet.
    """

    def __init__(self, repo: StatsRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    def daily_report(self, session: Session, day: date | None = None) -> DailyReport:
        day = day or datetime.now(timezone.utc).date()
        start, end = _day_bounds(day)

        rows: list[DailyReportRow] = []
        total = 0.0
        counts: Counter[str] = Counter()
        for order, full_name, item_count in self.repo.orders_between(session, start, end):
            counts[order.status] += 1
            if order.status not in NON_REVENUE_STATUSES:
                total += order.total_amount
            rows.append(
                DailyReportRow(
                    order_id=order.id,
                    order_date=order.order_date,
                    customer_name=full_name or "-",
                    total_amount=order.total_amount,
                    payment_type=order.payment_type,
                    status=order.status,
                    item_count=int(item_count or 0),
                    transaction_slip=order.transaction_slip,
                    is_payment_checked=order.is_payment_checked,
                    transaction_status=order.transaction_status,
                )
            )

        return DailyReport(
            date=day,
            orders=rows,
            order_count=len(rows),
            total_amount=round(total, 2),
            status_counts=dict(counts),
        )

    def inventory_report(self, session: Session) -> InventoryReport:
        """
        Every product with its stock counters and value at cost.
        """
        rows: list[InventoryReportRow] = []
        for p in self.product_repo.list_all(session):
            available = p.available_stock
            rows.append(
                InventoryReportRow(
                    product_id=p.id,
                    name=p.name,
                    brand=p.brand,
                    unit=p.unit,
                    category_id=p.category_id,
                    quantity=p.quantity,
                    total_sales=p.total_sales,
                    cancellation_count=p.cancellation_count,
                    available_stock=available,
                    reorder_point=p.reorder_point,
                    sale_cost=p.sale_cost,
                    sale_price=p.sale_price,
                    stock_value=round(max(available, 0) * p.sale_cost, 2),
                    needs_reorder=available <= p.reorder_point,
                )
            )

        return InventoryReport(
            generated_at=datetime.now(timezone.utc),
            products=rows,
            total_stock_value=round(sum(r.stock_value for r in rows), 2),
            reorder_count=sum(1 for r in rows if r.needs_reorder),
        )
