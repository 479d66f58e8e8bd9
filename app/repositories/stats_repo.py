# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.user import User
from app.models.order import Order, OrderItem
from app.models.product import Category, Product

# Orders whose money does not count as sales
NON_REVENUE_STATUSES = ("cancelled", "refunding", "refunded")


class StatsRepository:
    """
    Read-only aggregated queries for the admin dashboard and reports.

    Date bucketing uses func.date() with explicit range filters so the
    same queries run on Postgres and SQLite.
    """

    def count_customers(self, session: Session) -> int:
        stmt = select(func.count()).select_from(User).where(User.access_level == 0)
        # SQLModel's Session.exec() -> ScalarResult -> use .one()
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_orders(self, session: Session) -> int:
        stmt = select(func.count()).select_from(Order)
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_new_orders(self, session: Session) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.status.in_(["pending", "waiting_payment"]))
        )
        return int(session.exec(stmt).one() or 0)

    def revenue_between(
        self,
        session: Session,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> float:
        """
        Sum of total_amount for orders that still count as sales,
        optionally limited to [start, end).
        """
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0.0)).where(
            Order.status.not_in(NON_REVENUE_STATUSES)
        )
        if start is not None:
            stmt = stmt.where(Order.order_date >= start)
        if end is not None:
            stmt = stmt.where(Order.order_date < end)
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def total_available_stock(self, session: Session) -> int:
        stmt = select(
            func.coalesce(
                func.sum(Product.quantity - Product.total_sales + Product.cancellation_count),
                0,
            )
        )
        return int(session.exec(stmt).one() or 0)

    def daily_sales(self, session: Session, start: datetime, end: datetime) -> list[tuple]:
        """
        Aggregate revenue per day for orders in [start, end).
        Excludes cancelled and refunded orders.
        """
        day_expr = func.date(Order.order_date)

        stmt = (
            select(
                day_expr.label("day"),
                func.coalesce(func.sum(Order.total_amount), 0.0).label("revenue"),
                func.count(Order.id).label("order_count"),
            )
            .where(
                Order.status.not_in(NON_REVENUE_STATUSES),
                Order.order_date >= start,
                Order.order_date < end,
            )
            .group_by(day_expr)
            .order_by(day_expr)
        )

        return list(session.exec(stmt).all())

    def top_products(self, session: Session, limit: int = 5) -> list[tuple]:
        """
        Top products by quantity sold across all orders that count as sales.
        """
        price_paid = func.coalesce(OrderItem.discount_price, OrderItem.sale_price)
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        revenue_sum = func.coalesce(func.sum(OrderItem.quantity * price_paid), 0.0)

        stmt = (
            select(
                OrderItem.product_id,
                Product.name,
                qty_sum.label("total_quantity"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(Order.status.not_in(NON_REVENUE_STATUSES))
            .group_by(OrderItem.product_id, Product.name)
            .order_by(qty_sum.desc())
            .limit(limit)
        )

        return list(session.exec(stmt).all())

    def best_sellers(self, session: Session, limit: int = 8) -> list[Product]:
        """
        Visible products ranked by quantity sold, counted the same way as
        top_products. Products that never sold are left out.
        """
        qty_sum = func.sum(OrderItem.quantity)
        stmt = (
            select(Product)
            .join(OrderItem, OrderItem.product_id == Product.id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.status.not_in(NON_REVENUE_STATUSES),
                Product.visibility == True,  # noqa: E712
            )
            .group_by(Product.id)
            .order_by(qty_sum.desc(), Product.id)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def top_categories(self, session: Session, limit: int = 4) -> list[tuple]:
        """
        Categories ranked by quantity of their visible products sold.
        """
        qty_sum = func.sum(OrderItem.quantity)
        stmt = (
            select(Category.id, Category.name, qty_sum.label("total_quantity"))
            .join(Product, Product.category_id == Category.id)
            .join(OrderItem, OrderItem.product_id == Product.id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.status.not_in(NON_REVENUE_STATUSES),
                Product.visibility == True,  # noqa: E712
            )
            .group_by(Category.id, Category.name)
            .order_by(qty_sum.desc(), Category.id)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def latest_orders(self, session: Session, limit: int = 5) -> list[tuple]:
        """
        Latest N orders (any status) with the customer's display name.
        """
        stmt = (
            select(Order, User.full_name)
            .join(User, User.id == Order.user_id, isouter=True)
            .order_by(Order.id.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def low_stock_products(self, session: Session, limit: int = 10) -> list[Product]:
        available = Product.quantity - Product.total_sales + Product.cancellation_count
        stmt = (
            select(Product)
            .where(available <= Product.reorder_point)
            .order_by(available, Product.id)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def orders_between(self, session: Session, start: datetime, end: datetime) -> list[tuple]:
        """
        Orders placed in [start, end) with customer name and item count,
        oldest first (daily report).
        """
        item_count = (
            select(func.count(OrderItem.id))
            .where(OrderItem.order_id == Order.id)
            .correlate(Order)
            .scalar_subquery()
        )
        stmt = (
            select(Order, User.full_name, item_count.label("item_count"))
            .join(User, User.id == Order.user_id, isouter=True)
            .where(Order.order_date >= start, Order.order_date < end)
            .order_by(Order.id)
        )
        return list(session.exec(stmt).all())
