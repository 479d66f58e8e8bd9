# app/routers/orders.py
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import AddressRepository, UserRepository
from app.schemas.order import (
    CancelRequest,
    CheckoutRequest,
    CustomerOrderActionResponse,
    OrderRead,
    OrderWithItemsRead,
)
from app.services.cart_service import CartService
from app.services.order_service import OrderService
from app.services.setting_service import SettingService

router = APIRouter(prefix="/orders", tags=["Orders"])

product_repo = ProductRepository()
setting_service = SettingService(SettingRepository(), UserRepository())
service = OrderService(
    OrderRepository(),
    CartService(CartRepository(), product_repo, setting_service),
    product_repo,
    AddressRepository(),
    setting_service,
)


@router.post(
    "",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Create an order from the current user's cart.

    Prices come from the live catalog; shipping and COD fees from the
    website settings. The cart is emptied on success.
    """
    return service.create_order_from_cart(session, current_user.id, payload)


@router.get("", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
    status_filter: str | None = None,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit, status_filter)


@router.get("/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.post("/{order_id}/transaction-slip", response_model=CustomerOrderActionResponse)
def upload_transaction_slip(
    order_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Upload the bank-transfer slip (JPEG or PNG, max 5 MB).
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    order = service.upload_transaction_slip(
        session, current_user.id, order_id, file.content_type, file_bytes
    )
    return {"message": "Transfer slip uploaded", "order": order}


@router.post("/{order_id}/cancel", response_model=CustomerOrderActionResponse)
def cancel_my_order(
    order_id: int,
    payload: CancelRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Cancel an unpaid order, or ask the shop to cancel a paid one.
    """
    message, order = service.cancel_order(session, current_user.id, order_id, payload.reason)
    return {"message": message, "order": order}


@router.post("/{order_id}/receive", response_model=CustomerOrderActionResponse)
def confirm_receive(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Confirm the goods arrived (shipped -> delivered).
    """
    order = service.confirm_receive(session, current_user.id, order_id)
    return {"message": "Order received", "order": order}
