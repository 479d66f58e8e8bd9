# app/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.cart import CartItemCreate, CartItemUpdate, CartSummary, CheckoutPreview
from app.schemas.order import PaymentType
from app.services.cart_service import CartService
from app.services.setting_service import SettingService

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(
    CartRepository(),
    ProductRepository(),
    SettingService(SettingRepository(), UserRepository()),
)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_cart_summary(session, current_user.id)


@router.get("/checkout-preview", response_model=CheckoutPreview)
def preview_checkout(
    payment_type: PaymentType = "bank_transfer",
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Fees and total for the current cart, plus any line that would
    make checkout fail (hidden product, not enough stock).
    """
    return service.checkout_preview(session, current_user.id, payment_type)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Put a product in the cart. Adding it again increases the quantity.
    """
    return service.add_to_cart(session, current_user.id, payload)


@router.patch("/{product_id}", response_model=CartSummary)
def set_cart_quantity(
    product_id: int,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.update_quantity(session, current_user.id, product_id, payload)


@router.delete("/{product_id}", response_model=CartSummary)
def remove_from_cart(
    product_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.remove_item(session, current_user.id, product_id)


@router.delete("", response_model=CartSummary)
def empty_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.clear_cart(session, current_user.id)
