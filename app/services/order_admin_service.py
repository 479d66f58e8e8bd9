# app/services/order_admin_service.py
import logging
from datetime import timedelta

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    SLIP_CONTENT_TYPES,
    delete_public_url,
    generate_filename,
    upload_to_storage,
    validate_image,
)
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    AutoCancelResult,
    NextStepRead,
    OrderAdminListItem,
    OrderAdminPage,
    OrderAdminRead,
    ShippingUpdateRequest,
    StepStateRead,
)
from app.services import order_flow
from app.services.order_flow import OrderStatus, Step
from app.services.order_service import OrderLifecycle, build_order_admin, utcnow
from app.services.setting_service import SettingService

logger = logging.getLogger(__name__)

# Statuses in which the ordered goods are still held back from stock
STOCK_HELD_STATUSES = (
    OrderStatus.WAITING_PAYMENT.value,
    OrderStatus.PENDING.value,
    OrderStatus.PREPARING.value,
    OrderStatus.REQ_CANCEL.value,
)


class OrderAdminService(OrderLifecycle):
    """
    Back-office order management.

    Every action loads the order, checks the matching order_flow
    predicate, mutates, commits once and returns the admin view.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        setting_service: SettingService,
    ):
        super().__init__(order_repo, product_repo)
        self.user_repo = user_repo
        self.setting_service = setting_service

    # -------- Helpers --------

    def _get_order(self, session: Session, order_id: int) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _dto(self, session: Session, order: Order) -> OrderAdminRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        customer = self.user_repo.get_by_id(session, order.user_id)
        return build_order_admin(
            order,
            items,
            customer_username=customer.username if customer else None,
            customer_name=customer.full_name if customer else None,
        )

    def _save(self, session: Session, order: Order) -> OrderAdminRead:
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        return self._dto(session, order)

    @staticmethod
    def _reject(detail: str) -> HTTPException:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    # -------- Queries --------

    def list_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: list[str] | None = None,
        payment_type: str | None = None,
        has_slip: bool | None = None,
        user_id: int | None = None,
    ) -> OrderAdminPage:
        orders = self.order_repo.list_all(
            session, skip, limit, status_filter, payment_type, has_slip, user_id
        )
        total = self.order_repo.count_all(session, status_filter, payment_type, has_slip, user_id)

        customers = self.user_repo.get_many(session, {o.user_id for o in orders})
        item_counts = self.order_repo.count_items_by_order(session, [o.id for o in orders])

        items = []
        for o in orders:
            customer = customers.get(o.user_id)
            items.append(
                OrderAdminListItem(
                    **o.model_dump(),
                    customer_username=customer.username if customer else None,
                    customer_name=customer.full_name if customer else None,
                    item_count=item_counts.get(o.id, 0),
                )
            )
        return OrderAdminPage(items=items, total=total, skip=skip, limit=limit)

    def get_order(self, session: Session, order_id: int) -> OrderAdminRead:
        return self._dto(session, self._get_order(session, order_id))

    def evaluate_step(self, session: Session, order_id: int, step: str) -> StepStateRead:
        """
        Back-office controls for an order shown on `step`.
        """
        order = self._get_order(session, order_id)
        state = order_flow.evaluate_step(order, Step(step))
        return StepStateRead(
            order_id=order.id,
            status=order.status,
            step=state.step.value,
            next_enabled=state.next_enabled,
            button_label=state.button_label,
            back_step=state.back_step.value if state.back_step else None,
            next_step=state.next_step.value if state.next_step else None,
            special_action=state.special_action,
            savable=state.savable,
            cancel_enabled=state.cancel_enabled,
            valid=state.valid,
        )

    def next_steps(self, session: Session, order_ids: list[int]) -> list[NextStepRead]:
        """
        Which page each order opens on from the order list.
        Unknown ids are skipped.
        """
        return [
            NextStepRead(order_id=o.id, status=o.status, step=order_flow.route_step(o).value)
            for o in self.order_repo.get_many(session, order_ids)
        ]

    # -------- Payment / confirmation --------

    def confirm_order(self, session: Session, order_id: int, actor_id: int) -> OrderAdminRead:
        """
        Accept the order for preparation: pending -> preparing.
        """
        order = self._get_order(session, order_id)
        if not order_flow.can_confirm_order(order):
            raise self._reject("Order cannot be confirmed in its current state")

        self._transition(order, OrderStatus.PREPARING, actor_id)
        order.is_confirmed = True
        order.confirmed_by = actor_id
        order.confirmed_at = utcnow()
        return self._save(session, order)

    def verify_payment(
        self,
        session: Session,
        order_id: int,
        result: str,
        actor_id: int,
    ) -> OrderAdminRead:
        """
        Record the result of checking a transfer slip.

        - On a normal order a rejected slip sends the order back to
          waiting_payment so the customer can upload a new one.
        - On an order under cancellation review the status is left alone;
          a rejected slip makes the order restore to waiting_payment if
          the request is later declined.
        """
        order = self._get_order(session, order_id)
        under_review = (
            order.status == OrderStatus.REQ_CANCEL
            and bool(order.transaction_slip)
            and order.transaction_status == "pending"
        )
        if not (order_flow.needs_payment_check(order) or under_review):
            raise self._reject("This order has no transfer slip waiting for a check")

        order.is_payment_checked = True
        order.checked_by = actor_id
        order.checked_at = utcnow()
        order.transaction_status = result

        if result == "rejected":
            if under_review:
                if order.status_before_cancel_request == OrderStatus.PENDING:
                    order.status_before_cancel_request = OrderStatus.WAITING_PAYMENT.value
            else:
                self._transition(order, OrderStatus.WAITING_PAYMENT, actor_id)
        else:
            order.update_by = actor_id
            order.update_at = utcnow()

        logger.info("Payment for order id=%s %s by user id=%s", order.id, result, actor_id)
        return self._save(session, order)

    # -------- Shipping --------

    def update_shipping(
        self,
        session: Session,
        payload: ShippingUpdateRequest,
        actor_id: int,
    ) -> OrderAdminRead:
        """
        Store shipping details. Only fields present in the payload change;
        an explicit null (or empty string) clears a column.
        """
        order = self._get_order(session, payload.order_id)
        if order.status != OrderStatus.PREPARING:
            raise self._reject("Shipping details can only be changed while the order is preparing")

        for key, value in payload.model_dump(exclude_unset=True, exclude={"order_id"}).items():
            if key == "is_auto_update_status" and value is None:
                continue
            setattr(order, key, value)

        order.shipping_updated_by = actor_id
        order.shipping_updated_at = utcnow()
        return self._save(session, order)

    # -------- Status --------

    def update_status(
        self,
        session: Session,
        order_id: int,
        target_value: str,
        actor_id: int,
    ) -> tuple[str, OrderAdminRead]:
        """
        Generic status change.

        The transition table is checked first, then the guard for the
        target:
          - preparing from pending: the order must be confirmable
          - back from req_cancel: only to the status saved with the request
          - shipped: payment settled and shipping details complete
          - refunded: refund slip uploaded
          - cancelled / refunding: must match cancellation_target
          - req_cancel: customers only
        """
        order = self._get_order(session, order_id)
        target = OrderStatus(target_value)

        if order.status == target:
            return "Status unchanged", self._dto(session, order)

        if not order_flow.can_transition(order.status, target):
            raise self._reject(f"Invalid status transition: {order.status} -> {target.value}")

        if target == OrderStatus.REQ_CANCEL:
            raise self._reject("Only the customer can request a cancellation")

        if target in (OrderStatus.CANCELLED, OrderStatus.REFUNDING):
            expected = order_flow.cancellation_target(order)
            if target != expected:
                raise self._reject(f"This order must be cancelled to '{expected.value}'")
            self._enter_cancellation(session, order, actor_id, None)
            session.commit()
            session.refresh(order)
            return "Order cancelled", self._dto(session, order)

        if order.status == OrderStatus.REQ_CANCEL:
            if target != order.status_before_cancel_request:
                raise self._reject("A declined cancellation must return to the previous status")
            self._restore_from_request(order, actor_id)
            return "Cancellation request declined", self._save(session, order)

        if target == OrderStatus.PREPARING:
            return "Order confirmed", self.confirm_order(session, order_id, actor_id)

        if target == OrderStatus.SHIPPED:
            if not order_flow.can_confirm_shipped(order):
                raise self._reject("Payment and shipping details must be complete before shipping")
            self._transition(order, target, actor_id)
            return "Order shipped", self._save(session, order)

        if target == OrderStatus.REFUNDED:
            if not order_flow.can_complete_refund(order):
                raise self._reject("Upload the refund slip before completing the refund")
            self._transition(order, target, actor_id)
            return "Refund completed", self._save(session, order)

        self._transition(order, target, actor_id)
        if target == OrderStatus.DELIVERED:
            order.received_at = order.received_at or utcnow()
        return "Status updated", self._save(session, order)

    # -------- Cancellation --------

    def _restore_from_request(self, order: Order, actor_id: int) -> None:
        previous = OrderStatus(order.status_before_cancel_request or OrderStatus.PENDING.value)
        self._transition(order, previous, actor_id)
        order.status_before_cancel_request = None
        order.cancel_reason = None

    def cancel_order(
        self,
        session: Session,
        order_id: int,
        reason: str,
        actor_id: int,
    ) -> OrderAdminRead:
        """
        Shop-initiated cancellation. Restocks the items.
        """
        order = self._get_order(session, order_id)
        if not order_flow.can_cancel(order):
            raise self._reject("This order can no longer be cancelled")

        self._enter_cancellation(session, order, actor_id, reason)
        session.commit()
        session.refresh(order)
        return self._dto(session, order)

    def review_cancel_request(
        self,
        session: Session,
        order_id: int,
        approve: bool,
        actor_id: int,
        note: str | None = None,
    ) -> tuple[str, OrderAdminRead]:
        order = self._get_order(session, order_id)
        if order.status != OrderStatus.REQ_CANCEL:
            raise self._reject("This order has no pending cancellation request")

        if approve:
            target = self._enter_cancellation(session, order, actor_id, None)
            if note:
                order.internal_note = note
            session.commit()
            session.refresh(order)
            message = "Order cancelled" if target == OrderStatus.CANCELLED else "Order moved to refund"
            return message, self._dto(session, order)

        self._restore_from_request(order, actor_id)
        if note:
            order.internal_note = note
        return "Cancellation request declined", self._save(session, order)

    # -------- Refund --------

    def upload_refund_slip(
        self,
        session: Session,
        order_id: int,
        content_type: str | None,
        file_bytes: bytes,
        actor_id: int,
    ) -> OrderAdminRead:
        order = self._get_order(session, order_id)
        if order.status != OrderStatus.REFUNDING:
            raise self._reject("A refund slip can only be attached while refunding")

        ext = validate_image(content_type, file_bytes, SLIP_CONTENT_TYPES)
        path = f"refunds/order_{order.id}/{generate_filename(ext)}"
        url = upload_to_storage(path, file_bytes, content_type)

        previous = order.refund_slip
        order.refund_slip = url
        order.is_refunded = True
        order.refund_by = actor_id
        order.refund_at = utcnow()
        dto = self._save(session, order)

        if previous:
            delete_public_url(previous)
        return dto

    # -------- Delete --------

    def delete_order(self, session: Session, order_id: int) -> None:
        """
        Delete an order with its items and slips.
        Goods still held by the order go back to stock.
        """
        order = self._get_order(session, order_id)
        if order.status in STOCK_HELD_STATUSES:
            self._restock(session, order)

        slips = [url for url in (order.transaction_slip, order.refund_slip) if url]
        self.order_repo.delete_order(session, order)
        session.commit()

        for url in slips:
            delete_public_url(url)
        logger.info("Order id=%s deleted", order_id)

    # -------- Cron --------

    def auto_cancel_unpaid(self, session: Session) -> AutoCancelResult:
        """
        Cancel bank-transfer orders still unpaid PAYMENT_TIMEOUT_HOURS after
        checkout, or after their slip was rejected.
        """
        hours = self.setting_service.get_number(session, "PAYMENT_TIMEOUT_HOURS")
        cutoff = utcnow() - timedelta(hours=hours)
        reason = f"Payment not received within {hours:g} hours"

        cancelled: list[int] = []
        for order in self.order_repo.list_unpaid_before(session, cutoff):
            self._enter_cancellation(session, order, None, reason)
            cancelled.append(order.id)
        session.commit()

        logger.info("Auto-cancel: %d unpaid order(s) cancelled", len(cancelled))
        return AutoCancelResult(
            message=f"{len(cancelled)} order(s) cancelled",
            cancelled_order_ids=cancelled,
        )
