# app/services/cart_service.py
from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.cart import CartItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartIssue,
    CartItemCreate,
    CartItemUpdate,
    CartLineRead,
    CartSummary,
    CheckoutPreview,
)
from app.services import order_flow
from app.services.setting_service import SettingService


def cart_issues(items: list[CartItem], products: dict[int, Product]) -> list[CartIssue]:
    """
    Lines that would block checkout: product gone or hidden,
    or more requested than available.
    """
    issues: list[CartIssue] = []
    for item in items:
        product = products.get(item.product_id)
        if product is None or not product.visibility:
            issues.append(CartIssue(product_id=item.product_id, reason="Product not available"))
        elif item.quantity > product.available_stock:
            issues.append(
                CartIssue(
                    product_id=item.product_id,
                    reason=(
                        f"Insufficient stock (have {product.available_stock}, "
                        f"requested {item.quantity})"
                    ),
                )
            )
    return issues


class CartService:
    """
    One cart per user, priced from live product data.

    Quantities are bounded by available stock
    (quantity - total_sales + cancellation_count) when they are set;
    checkout re-checks them because stock can move in between.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        setting_service: SettingService,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.setting_service = setting_service

    def _orderable_product(self, session: Session, product_id: int) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if product is None or not product.visibility:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    @staticmethod
    def _ensure_in_stock(product: Product, quantity: int) -> None:
        if quantity > product.available_stock:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Not enough stock available (have {product.available_stock})",
            )

    def _line(self, session: Session, user_id: int, product_id: int) -> CartItem:
        item = self.cart_repo.get_item(session, user_id, product_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in cart",
            )
        return item

    def load(self, session: Session, user_id: int) -> tuple[list[CartItem], dict[int, Product]]:
        """Cart rows of a user with their products keyed by id."""
        items = self.cart_repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])
        return items, products

    # ----- Fees -----

    def compute_fees(
        self,
        session: Session,
        subtotal: float,
        payment_type: str,
    ) -> tuple[float, float]:
        """
        Returns:
            (shipping_fee, cod_fee) from the current website settings.
            Shipping is free once the subtotal reaches SHIPPING_FREE_THRESHOLD
            (a threshold of 0 turns free shipping off).
        """
        shipping_fee = self.setting_service.get_number(session, "SHIPPING_FLAT_RATE")
        free_threshold = self.setting_service.get_number(session, "SHIPPING_FREE_THRESHOLD")
        if free_threshold > 0 and subtotal >= free_threshold:
            shipping_fee = 0.0

        cod_fee = 0.0
        if payment_type == order_flow.PAYMENT_COD:
            cod_fee = self.setting_service.get_number(session, "PAYMENT_COD_FEE")

        return round(shipping_fee, 2), round(cod_fee, 2)

    # ----- Reads -----

    def get_cart_summary(self, session: Session, user_id: int) -> CartSummary:
        items, products = self.load(session, user_id)

        lines: list[CartLineRead] = []
        for it in items:
            product = products.get(it.product_id)
            if product is None:
                continue
            price = product.effective_price
            lines.append(
                CartLineRead(
                    id=it.id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    name=product.name,
                    brand=product.brand,
                    unit=product.unit,
                    image_url=product.image_url,
                    sale_price=product.sale_price,
                    discount_price=product.discount_price,
                    price_paid_per_item=price,
                    available_stock=product.available_stock,
                    line_total=round(it.quantity * price, 2),
                )
            )

        return CartSummary(
            items=lines,
            total_quantity=sum(line.quantity for line in lines),
            total_price=round(sum(line.line_total for line in lines), 2),
        )

    def checkout_preview(
        self,
        session: Session,
        user_id: int,
        payment_type: str,
    ) -> CheckoutPreview:
        """
        What checkout would charge right now, and whatever would stop it.
        """
        items, products = self.load(session, user_id)
        issues = cart_issues(items, products)
        blocked = {issue.product_id for issue in issues}

        subtotal = round(
            sum(
                it.quantity * products[it.product_id].effective_price
                for it in items
                if it.product_id not in blocked
            ),
            2,
        )
        shipping_fee, cod_fee = self.compute_fees(session, subtotal, payment_type)

        maintenance_message = None
        if self.setting_service.get_bool(session, "MAINTENANCE_MODE"):
            maintenance_message = self.setting_service.get_raw(session, "MAINTENANCE_MESSAGE")

        return CheckoutPreview(
            payment_type=payment_type,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            cod_fee=cod_fee,
            total_amount=round(subtotal + shipping_fee + cod_fee, 2),
            vat_rate=self.setting_service.get_number(session, "VAT_RATE"),
            issues=issues,
            maintenance_message=maintenance_message,
            can_checkout=bool(items) and not issues and maintenance_message is None,
        )

    # ----- Mutations -----

    def add_to_cart(self, session: Session, user_id: int, payload: CartItemCreate) -> CartSummary:
        """
        Add a product; a product already in the cart has its quantity increased.

        Raises:
            HTTPException(404): product missing or hidden.
            HTTPException(400): resulting quantity above available stock.
        """
        product = self._orderable_product(session, payload.product_id)
        item = self.cart_repo.get_item(session, user_id, product.id)

        if item is None:
            self._ensure_in_stock(product, payload.quantity)
            self.cart_repo.create(
                session,
                CartItem(user_id=user_id, product_id=product.id, quantity=payload.quantity),
            )
        else:
            self._ensure_in_stock(product, item.quantity + payload.quantity)
            item.quantity += payload.quantity
            self.cart_repo.update(session, item)

        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: int,
        product_id: int,
        payload: CartItemUpdate,
    ) -> CartSummary:
        item = self._line(session, user_id, product_id)
        self._ensure_in_stock(self._orderable_product(session, product_id), payload.quantity)

        item.quantity = payload.quantity
        self.cart_repo.update(session, item)
        return self.get_cart_summary(session, user_id)

    def remove_item(self, session: Session, user_id: int, product_id: int) -> CartSummary:
        self.cart_repo.delete(session, self._line(session, user_id, product_id))
        return self.get_cart_summary(session, user_id)

    def clear_cart(self, session: Session, user_id: int) -> CartSummary:
        self.cart_repo.clear_user_cart(session, user_id)
        return CartSummary(items=[], total_quantity=0, total_price=0.0)
