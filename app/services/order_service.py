# app/services/order_service.py
import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    SLIP_CONTENT_TYPES,
    delete_public_url,
    generate_filename,
    upload_to_storage,
    validate_image,
)
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import AddressRepository
from app.schemas.order import (
    CheckoutRequest,
    OrderAdminItemRead,
    OrderAdminRead,
    OrderItemRead,
    OrderRead,
    OrderWithItemsRead,
)
from app.services import order_flow
from app.services.cart_service import CartService, cart_issues
from app.services.order_flow import OrderStatus
from app.services.setting_service import SettingService

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_order_with_items(order: Order, items: list[OrderItem]) -> OrderWithItemsRead:
    """
    Compose the customer view of an order from ORM rows.
    """
    data = order.model_dump()
    return OrderWithItemsRead(
        **data,
        items=[OrderItemRead(**it.model_dump(), price_paid_per_item=it.price_paid_per_item,
                             subtotal=it.subtotal) for it in items],
    )


def build_order_admin(
    order: Order,
    items: list[OrderItem],
    customer_username: str | None = None,
    customer_name: str | None = None,
) -> OrderAdminRead:
    """
    Compose the back-office view of an order (every column, item costs).
    """
    return OrderAdminRead(
        **order.model_dump(),
        customer_username=customer_username,
        customer_name=customer_name,
        items=[OrderAdminItemRead(**it.model_dump(), price_paid_per_item=it.price_paid_per_item,
                                  subtotal=it.subtotal) for it in items],
    )


class OrderLifecycle:
    """
    Mutations shared by customer and admin order services.

    Every status change goes through `_transition`, which checks the
    order_flow transition table.
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.product_repo = product_repo

    def _transition(self, order: Order, target: OrderStatus, actor_id: int | None) -> None:
        """
        Raises:
            HTTPException(400): if the table has no edge current -> target.
        """
        current = order.status
        if not order_flow.can_transition(current, target):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {target.value}",
            )
        order.status = target.value
        order.update_by = actor_id
        order.update_at = utcnow()
        logger.info(
            "Order id=%s status %s -> %s (by user id=%s)",
            order.id,
            current,
            target.value,
            actor_id,
        )

    def _restock(self, session: Session, order: Order) -> None:
        """Return the order's quantities to stock via cancellation_count."""
        items = self.order_repo.list_items_for_order(session, order.id)
        products = self.product_repo.get_many(
            session, [it.product_id for it in items if it.product_id is not None]
        )
        for it in items:
            product = products.get(it.product_id)
            if product is None:
                continue
            product.cancellation_count += it.quantity
            session.add(product)

    def _enter_cancellation(
        self,
        session: Session,
        order: Order,
        actor_id: int | None,
        reason: str | None,
    ) -> OrderStatus:
        """
        Move an order onto its cancellation route and restock it.

        The target is decided by order_flow.cancellation_target: orders
        with a live transfer slip go to refunding, the rest to cancelled.
        """
        target = order_flow.cancellation_target(order)
        self._transition(order, target, actor_id)

        order.is_cancelled = True
        order.cancel_by = actor_id
        order.cancel_date = utcnow()
        if reason:
            order.cancel_reason = reason
        order.status_before_cancel_request = None

        self._restock(session, order)
        self.order_repo.update_order(session, order)
        return target


class OrderService(OrderLifecycle):
    """
    Business logic for customer-facing orders.

    Responsibilities:
      - Create order from cart (live prices, stock check, fees from settings)
      - Transfer slip upload
      - Cancellation (direct or by request)
      - Receive confirmation
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_service: CartService,
        product_repo: ProductRepository,
        address_repo: AddressRepository,
        setting_service: SettingService,
    ):
        super().__init__(order_repo, product_repo)
        self.cart_service = cart_service
        self.address_repo = address_repo
        self.setting_service = setting_service

    # -------- Helpers --------

    def _get_own_order(self, session: Session, user_id: int, order_id: int) -> Order:
        """
        404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _dto(self, session: Session, order: Order) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return build_order_with_items(order, items)

    # -------- Checkout --------

    def create_order_from_cart(
        self,
        session: Session,
        user_id: int,
        payload: CheckoutRequest,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        Steps:
          1. Refuse while the store is in maintenance mode.
          2. Resolve the delivery address (must belong to the user).
          3. Load cart items; error if empty.
          4. For each cart item: product exists, is visible, and
             quantity <= available stock.
          5. Compute subtotal from live prices, fees from settings.
          6. Create Order row (status='pending') with an address snapshot.
          7. Create OrderItem rows with product snapshots.
          8. Increment product total_sales.
          9. Clear cart and commit once.
        """
        # 1) Maintenance mode closes checkout
        if self.setting_service.get_bool(session, "MAINTENANCE_MODE"):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=self.setting_service.get_raw(session, "MAINTENANCE_MESSAGE"),
            )

        # 2) Address
        address = self.address_repo.get_by_id(session, payload.address_id)
        if not address or address.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Address not found",
            )

        # 3) Load cart
        cart_items, product_map = self.cart_service.load(session, user_id)
        if not cart_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        # 4) Validate each cart item vs product
        issues = cart_issues(cart_items, product_map)
        if issues:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Cart validation failed",
                    "items": [issue.model_dump() for issue in issues],
                },
            )

        # 5) Totals
        subtotal = round(
            sum(ci.quantity * product_map[ci.product_id].effective_price for ci in cart_items), 2
        )
        shipping_fee, cod_fee = self.cart_service.compute_fees(
            session, subtotal, payload.payment_type
        )
        total_amount = round(subtotal + shipping_fee + cod_fee, 2)

        # 6) Create the Order
        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            payment_type=payload.payment_type,
            customer_note=payload.customer_note,
            address_id=address.id,
            address_1=address.address_1,
            address_2=address.address_2,
            sub_district=address.sub_district,
            district=address.district,
            province=address.province,
            zip_code=address.zip_code,
            phone=address.phone,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            cod_fee=cod_fee,
            total_amount=total_amount,
            current_vat=self.setting_service.get_number(session, "VAT_RATE"),
        )
        order = self.order_repo.create_order(session, order)

        # 7) Snapshot items
        order_items: list[OrderItem] = []
        for ci in cart_items:
            product = product_map[ci.product_id]
            order_items.append(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    quantity=ci.quantity,
                    name=product.name,
                    brand=product.brand,
                    unit=product.unit,
                    image_url=product.image_url,
                    sale_cost=product.sale_cost,
                    sale_price=product.sale_price,
                    discount_price=product.discount_price,
                )
            )
        self.order_repo.create_items(session, order_items)

        # 8) Sales counter drives available stock
        for ci in cart_items:
            product = product_map[ci.product_id]
            product.total_sales += ci.quantity
            session.add(product)

        # 9) Clear cart and commit
        self.cart_service.cart_repo.clear_user_cart(session, user_id, commit=False)
        session.commit()
        session.refresh(order)

        logger.info(
            "Order id=%s created for user id=%s (%s, total %.2f)",
            order.id,
            user_id,
            order.payment_type,
            order.total_amount,
        )
        return self._dto(session, order)

    # -------- Queries --------

    def list_user_orders(
        self,
        session: Session,
        user_id: int,
        skip: int = 0,
        limit: int = 50,
        status_filter: str | None = None,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit, status_filter)
        return [OrderRead.model_validate(o) for o in orders]

    def get_user_order(self, session: Session, user_id: int, order_id: int) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.
        """
        order = self._get_own_order(session, user_id, order_id)
        return self._dto(session, order)

    # -------- Actions --------

    def upload_transaction_slip(
        self,
        session: Session,
        user_id: int,
        order_id: int,
        content_type: str | None,
        file_bytes: bytes,
    ) -> OrderWithItemsRead:
        """
        Attach (or replace) the bank-transfer slip of an order.

        Allowed while the order is pending or waiting_payment and the
        payment has not been confirmed yet. A waiting_payment order goes
        back to pending for a new check.
        """
        order = self._get_own_order(session, user_id, order_id)

        if order.payment_type != order_flow.PAYMENT_BANK_TRANSFER:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only bank transfer orders take a transfer slip",
            )
        if order.status not in (OrderStatus.PENDING, OrderStatus.WAITING_PAYMENT):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A slip can no longer be uploaded for this order",
            )
        if order.transaction_status == "confirmed":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Payment has already been confirmed",
            )

        ext = validate_image(content_type, file_bytes, SLIP_CONTENT_TYPES)
        path = f"slips/order_{order.id}/{generate_filename(ext)}"
        url = upload_to_storage(path, file_bytes, content_type)

        previous = order.transaction_slip
        order.transaction_slip = url
        order.transaction_date = utcnow()
        order.transaction_status = "pending"
        order.is_payment_checked = False
        order.checked_by = None
        order.checked_at = None

        if order.status == OrderStatus.WAITING_PAYMENT:
            self._transition(order, OrderStatus.PENDING, user_id)
        else:
            order.update_by = user_id
            order.update_at = utcnow()

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        if previous:
            delete_public_url(previous)

        logger.info("Slip uploaded for order id=%s", order.id)
        return self._dto(session, order)

    def cancel_order(
        self,
        session: Session,
        user_id: int,
        order_id: int,
        reason: str,
    ) -> tuple[str, OrderWithItemsRead]:
        """
        Customer cancellation.

        - Unpaid orders (pending / waiting_payment without a live slip)
          are cancelled immediately and restocked.
        - Everything else that can still be cancelled becomes a
          cancellation request for the shop to review.

        Returns:
            (message, order)
        """
        order = self._get_own_order(session, user_id, order_id)

        if order.status == OrderStatus.REQ_CANCEL:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cancellation has already been requested",
            )
        if not order_flow.can_cancel(order):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This order can no longer be cancelled",
            )

        unpaid = order.status in (
            OrderStatus.PENDING,
            OrderStatus.WAITING_PAYMENT,
        ) and not order_flow.has_active_slip(order)

        if unpaid:
            self._enter_cancellation(session, order, user_id, reason)
            message = "Order cancelled"
        else:
            previous = order.status
            self._transition(order, OrderStatus.REQ_CANCEL, user_id)
            order.status_before_cancel_request = previous
            order.cancel_reason = reason
            self.order_repo.update_order(session, order)
            message = "Cancellation request sent"

        session.commit()
        session.refresh(order)
        return message, self._dto(session, order)

    def confirm_receive(self, session: Session, user_id: int, order_id: int) -> OrderWithItemsRead:
        """
        Customer confirms the goods arrived: shipped -> delivered.
        """
        order = self._get_own_order(session, user_id, order_id)

        if order.status != OrderStatus.SHIPPED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only shipped orders can be marked as received",
            )

        self._transition(order, OrderStatus.DELIVERED, user_id)
        order.is_received = True
        order.received_at = utcnow()
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        return self._dto(session, order)
