# app/routers/settings.py
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_permission
from app.database import get_session
from app.models.user import User
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.setting import (
    SettingHistoryRead,
    SettingRead,
    SettingUpdate,
    SettingUpdateResponse,
)
from app.services.setting_service import SettingService

router = APIRouter(tags=["Settings"])

service = SettingService(SettingRepository(), UserRepository())

require_sys_admin = require_permission("sys_admin")


@router.get("/settings")
def public_settings(session: Session = Depends(get_session)) -> dict[str, Any]:
    """
    Typed website settings for the storefront, keyed by setting key.
    """
    return service.public_settings(session)


@router.get(
    "/admin/settings",
    response_model=list[SettingRead],
    dependencies=[Depends(require_sys_admin)],
)
def list_settings(
    group: str | None = None,
    session: Session = Depends(get_session),
):
    """
    Every setting with its definition and current value.

    `group` narrows to general | payment | order | system.
    """
    return service.list_settings(session, group)


@router.get(
    "/admin/settings/{key}",
    response_model=SettingRead,
    dependencies=[Depends(require_sys_admin)],
)
def get_setting(key: str, session: Session = Depends(get_session)):
    return service.get_setting(session, key)


@router.put("/admin/settings/{key}", response_model=SettingUpdateResponse)
def update_setting(
    key: str,
    payload: SettingUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_sys_admin),
):
    setting = service.update_setting(session, key, payload.value, current_user)
    return {"message": "Setting updated", "setting": setting}


@router.post("/admin/settings/{key}/image", response_model=SettingUpdateResponse)
def upload_setting_image(
    key: str,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_sys_admin),
):
    """
    Upload the image for an image setting (logo, payment QR).
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    setting = service.upload_image(session, key, file.content_type, file_bytes, current_user)
    return {"message": "Setting updated", "setting": setting}


@router.get(
    "/admin/settings/{key}/history",
    response_model=list[SettingHistoryRead],
    dependencies=[Depends(require_sys_admin)],
)
def setting_history(
    key: str,
    limit: int = 20,
    session: Session = Depends(get_session),
):
    return service.history(session, key, limit)
