# app/repositories/order_repo.py
from datetime import datetime

from sqlalchemy import and_, func, or_
from sqlmodel import Session, select

from app.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation and cancellation are multi-step
        transactions. The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: int,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.id.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def _admin_filters(
        self,
        stmt,
        status: list[str] | None,
        payment_type: str | None,
        has_slip: bool | None,
        user_id: int | None,
    ):
        if status:
            stmt = stmt.where(Order.status.in_(status))
        if payment_type:
            stmt = stmt.where(Order.payment_type == payment_type)
        if has_slip is True:
            stmt = stmt.where(Order.transaction_slip.is_not(None))
        elif has_slip is False:
            stmt = stmt.where(Order.transaction_slip.is_(None))
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        return stmt

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: list[str] | None = None,
        payment_type: str | None = None,
        has_slip: bool | None = None,
        user_id: int | None = None,
    ) -> list[Order]:
        stmt = self._admin_filters(select(Order), status, payment_type, has_slip, user_id)
        stmt = stmt.order_by(Order.id.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def count_all(
        self,
        session: Session,
        status: list[str] | None = None,
        payment_type: str | None = None,
        has_slip: bool | None = None,
        user_id: int | None = None,
    ) -> int:
        stmt = self._admin_filters(
            select(func.count()).select_from(Order), status, payment_type, has_slip, user_id
        )
        return int(session.exec(stmt).one() or 0)

    def get_by_id(self, session: Session, order_id: int) -> Order | None:
        return session.get(Order, order_id)

    def get_many(self, session: Session, order_ids: list[int]) -> list[Order]:
        if not order_ids:
            return []
        stmt = select(Order).where(Order.id.in_(order_ids)).order_by(Order.id)
        return session.exec(stmt).all()

    def list_unpaid_before(self, session: Session, cutoff: datetime) -> list[Order]:
        """
        Bank-transfer orders still owing a payment since before `cutoff`:
        pending orders that never got a slip (aged by order_date) and
        waiting_payment orders whose slip was rejected (aged by checked_at).
        """
        stmt = (
            select(Order)
            .where(
                Order.payment_type == "bank_transfer",
                or_(
                    and_(
                        Order.status == "pending",
                        Order.transaction_slip.is_(None),
                        Order.order_date < cutoff,
                    ),
                    and_(
                        Order.status == "waiting_payment",
                        Order.transaction_status == "rejected",
                        Order.checked_at < cutoff,
                    ),
                ),
            )
            .order_by(Order.id)
        )
        return session.exec(stmt).all()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    def delete_order(self, session: Session, order: Order) -> None:
        for item in self.list_items_for_order(session, order.id):
            session.delete(item)
        session.flush()
        session.delete(order)
        session.flush()

    # ---- Order items ----

    def list_items_for_order(self, session: Session, order_id: int) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        return session.exec(stmt).all()

    def count_items_by_order(self, session: Session, order_ids: list[int]) -> dict[int, int]:
        if not order_ids:
            return {}
        stmt = (
            select(OrderItem.order_id, func.count(OrderItem.id))
            .where(OrderItem.order_id.in_(order_ids))
            .group_by(OrderItem.order_id)
        )
        return {order_id: int(n) for order_id, n in session.exec(stmt).all()}

    def create_items(self, session: Session, items: list[OrderItem]) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    def detach_product(self, session: Session, product_id: int) -> None:
        """Keep order history when a product is deleted: null the reference."""
        stmt = select(OrderItem).where(OrderItem.product_id == product_id)
        for item in session.exec(stmt).all():
            item.product_id = None
            session.add(item)
        session.flush()
