# app/routers/cron.py
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.auth import bearer_scheme
from app.core.config import get_settings
from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import AutoCancelResult
from app.services.order_admin_service import OrderAdminService
from app.services.setting_service import SettingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])

user_repo = UserRepository()
service = OrderAdminService(
    OrderRepository(),
    ProductRepository(),
    user_repo,
    SettingService(SettingRepository(), user_repo),
)


def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    """
    Scheduler calls carry `Authorization: Bearer <CRON_SECRET>`.

    Raises:
        HTTPException(401): secret not configured, missing or wrong.
    """
    secret = get_settings().CRON_SECRET
    if (
        not secret
        or credentials is None
        or not hmac.compare_digest(credentials.credentials, secret)
    ):
        logger.warning("Rejected cron call without a valid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


@router.api_route(
    "/auto-cancel",
    methods=["GET", "POST"],
    response_model=AutoCancelResult,
    dependencies=[Depends(require_cron_secret)],
)
def auto_cancel_unpaid_orders(session: Session = Depends(get_session)):
    """
    Cancel bank-transfer orders left unpaid (no slip, or a rejected
    one) past PAYMENT_TIMEOUT_HOURS. Schedulers call it with GET.
    Safe to call repeatedly.
    """
    return service.auto_cancel_unpaid(session)
