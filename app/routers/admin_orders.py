# app/routers/admin_orders.py
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_permission
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    AdminCancelRequest,
    CancelReviewRequest,
    NextStepRead,
    NextStepRequest,
    OrderActionResponse,
    OrderAdminPage,
    OrderAdminRead,
    OrderIdPayload,
    OrderStatusUpdate,
    PaymentType,
    PaymentVerifyRequest,
    ShippingUpdateRequest,
    StepName,
    StepStateRead,
)
from app.services.order_admin_service import OrderAdminService
from app.services.setting_service import SettingService

router = APIRouter(prefix="/admin/order", tags=["Admin Orders"])

user_repo = UserRepository()
service = OrderAdminService(
    OrderRepository(),
    ProductRepository(),
    user_repo,
    SettingService(SettingRepository(), user_repo),
)

require_order_mgr = require_permission("order_mgr")


@router.get(
    "",
    response_model=OrderAdminPage,
    dependencies=[Depends(require_order_mgr)],
)
def list_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status_filter: list[str] | None = Query(default=None, alias="status"),
    payment_type: PaymentType | None = None,
    has_slip: bool | None = None,
    user_id: int | None = None,
):
    """
    List orders, newest first.

    Query params (all optional):
      - status: repeat to match several statuses
      - payment_type: bank_transfer | cash_on_delivery
      - has_slip: true/false, transfer slip attached or not
      - user_id: orders of one customer
    """
    return service.list_orders(
        session,
        skip=skip,
        limit=limit,
        status_filter=status_filter,
        payment_type=payment_type,
        has_slip=has_slip,
        user_id=user_id,
    )


@router.post(
    "/next-step",
    response_model=list[NextStepRead],
    dependencies=[Depends(require_order_mgr)],
)
def next_steps(
    payload: NextStepRequest,
    session: Session = Depends(get_session),
):
    """
    Which back-office page each order opens on.
    """
    return service.next_steps(session, payload.order_ids)


@router.patch("/confirm-order", response_model=OrderActionResponse)
def confirm_order(
    payload: OrderIdPayload,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Accept an order for preparation (pending -> preparing).
    """
    order = service.confirm_order(session, payload.order_id, current_user.id)
    return {"message": "Order confirmed", "order": order}


@router.post("/payment-verify", response_model=OrderActionResponse)
def verify_payment(
    payload: PaymentVerifyRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Confirm or reject the transfer slip of an order.
    """
    order = service.verify_payment(session, payload.order_id, payload.result, current_user.id)
    message = "Payment confirmed" if payload.result == "confirmed" else "Payment rejected"
    return {"message": message, "order": order}


@router.patch("/shipping-update", response_model=OrderActionResponse)
def update_shipping(
    payload: ShippingUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    order = service.update_shipping(session, payload, current_user.id)
    return {"message": "Shipping details saved", "order": order}


@router.patch("/status", response_model=OrderActionResponse)
def update_status(
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Move an order to another status.

    Only transitions allowed by the order lifecycle are accepted, and each
    target has its own precondition (see OrderAdminService.update_status).
    """
    message, order = service.update_status(
        session, payload.order_id, payload.status, current_user.id
    )
    return {"message": message, "order": order}


@router.patch("/req-cancel-order", response_model=OrderActionResponse)
def cancel_order(
    payload: AdminCancelRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Cancel an order on the shop's side. Paid orders go to refunding.
    """
    order = service.cancel_order(session, payload.order_id, payload.reason, current_user.id)
    return {"message": "Order cancelled", "order": order}


@router.patch("/cancel-review", response_model=OrderActionResponse)
def review_cancel_request(
    payload: CancelReviewRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Approve or decline a customer's cancellation request.
    """
    message, order = service.review_cancel_request(
        session, payload.order_id, payload.approve, current_user.id, payload.note
    )
    return {"message": message, "order": order}


@router.get(
    "/{order_id}",
    response_model=OrderAdminRead,
    dependencies=[Depends(require_order_mgr)],
)
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
):
    return service.get_order(session, order_id)


@router.get(
    "/{order_id}/step",
    response_model=StepStateRead,
    dependencies=[Depends(require_order_mgr)],
)
def get_step_state(
    order_id: int,
    controller: StepName,
    session: Session = Depends(get_session),
):
    """
    Controls available for this order on one back-office page.

    `controller` is one of checkorder, shipping, summary, shipped,
    refunding, req_cancel.
    """
    return service.evaluate_step(session, order_id, controller)


@router.patch("/{order_id}/refund-slip", response_model=OrderActionResponse)
def upload_refund_slip(
    order_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_order_mgr),
):
    """
    Attach the refund transfer slip (JPEG or PNG, max 5 MB).
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    order = service.upload_refund_slip(
        session, order_id, file.content_type, file_bytes, current_user.id
    )
    return {"message": "Refund slip uploaded", "order": order}


@router.delete("/{order_id}", dependencies=[Depends(require_order_mgr)])
def delete_order(
    order_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    service.delete_order(session, order_id)
    return {"message": "Order deleted successfully"}
