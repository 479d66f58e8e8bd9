# app/services/setting_service.py
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    IMAGE_CONTENT_TYPES,
    delete_public_url,
    generate_filename,
    upload_to_storage,
    validate_image,
)
from app.models.setting import WebsiteSetting, WebsiteSettingHistory
from app.models.user import User
from app.repositories.setting_repo import SettingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.setting import SettingHistoryRead, SettingRead

logger = logging.getLogger(__name__)

TRUE_VALUES = ("True", "1")
BOOLEAN_VALUES = ("True", "False", "1", "0")


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    label: str
    type: str
    group: str
    default: str
    description: str | None = None


SETTING_DEFINITIONS: tuple[SettingDefinition, ...] = (
    # General
    SettingDefinition("WEBSITE_NAME", "Website name", "string", "general", "My Construction Shop",
                      "Shown in the header, page titles and documents"),
    SettingDefinition("WEBSITE_LOGO_URL", "Website logo", "image", "general", ""),
    SettingDefinition("WEBSITE_DESCRIPTION", "Website description", "string", "general", "",
                      "Used for SEO metadata"),
    SettingDefinition("WEBSITE_KEYWORDS", "SEO keywords", "string", "general", "",
                      "Comma separated"),
    SettingDefinition("CONTACT_EMAIL", "Contact email", "string", "general", "support@example.com"),
    SettingDefinition("CONTACT_PHONE", "Contact phone", "string", "general", "098-765-4321"),
    SettingDefinition("CONTACT_ADDRESS", "Contact address", "string", "general", ""),
    SettingDefinition("CONTACT_MAP_EMBED_URL", "Map embed URL", "string", "general", ""),
    SettingDefinition("FACEBOOK_URL", "Facebook URL", "string", "general", ""),
    SettingDefinition("FACEBOOK_PAGE_NAME", "Facebook page name", "string", "general", ""),
    SettingDefinition("LINE_URL", "LINE URL", "string", "general", ""),
    SettingDefinition("LINE_OFFICIAL_NAME", "LINE official name", "string", "general", ""),
    SettingDefinition("COMPANY_NAME", "Company name", "string", "general", ""),
    SettingDefinition("COMPANY_ADDRESS", "Company address", "string", "general", ""),
    SettingDefinition("COMPANY_TAX_ID", "Company tax id", "string", "general", ""),
    SettingDefinition("VAT_RATE", "VAT rate (%)", "number", "general", "7",
                      "Prices are VAT inclusive; the rate is recorded on each order"),
    # Payment
    SettingDefinition("PAYMENT_BANK_NAME", "Bank name", "string", "payment", ""),
    SettingDefinition("PAYMENT_BANK_ACCOUNT_NAME", "Bank account name", "string", "payment", ""),
    SettingDefinition("PAYMENT_BANK_ACCOUNT_NUMBER", "Bank account number", "string", "payment", ""),
    SettingDefinition("PAYMENT_QR_SCAN_IMAGE", "Payment QR image", "image", "payment", ""),
    SettingDefinition("PAYMENT_TIMEOUT_HOURS", "Payment timeout (hours)", "number", "payment", "24",
                      "Unpaid bank-transfer orders are cancelled after this many hours"),
    SettingDefinition("PAYMENT_COD_FEE", "Cash on delivery fee", "number", "payment", "0"),
    # Order
    SettingDefinition("SHIPPING_FLAT_RATE", "Shipping flat rate", "number", "order", "50"),
    SettingDefinition("SHIPPING_FREE_THRESHOLD", "Free shipping threshold", "number", "order", "1500",
                      "Orders with a subtotal at or above this amount ship free; 0 disables"),
    # System
    SettingDefinition("MAINTENANCE_MODE", "Maintenance mode", "boolean", "system", "False",
                      "When on, checkout is closed"),
    SettingDefinition("MAINTENANCE_MESSAGE", "Maintenance message", "string", "system",
                      "The store is under maintenance. Please come back later."),
)

DEFINITIONS_BY_KEY: dict[str, SettingDefinition] = {d.key: d for d in SETTING_DEFINITIONS}


def parse_value(raw: str, type_: str) -> Any:
    """Convert stored text to its typed value."""
    if type_ == "number":
        try:
            return float(raw)
        except ValueError:
            return None
    if type_ == "boolean":
        return raw in TRUE_VALUES
    if type_ == "json":
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


class SettingService:
    """
    Typed key/value website settings.

    Values are stored as text; every key has a definition in
    SETTING_DEFINITIONS that fixes its type, group and default.
    Every update writes a history row.
    """

    def __init__(self, repo: SettingRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    # ----- Helpers -----

    @staticmethod
    def _definition(key: str) -> SettingDefinition:
        definition = DEFINITIONS_BY_KEY.get(key)
        if definition is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown setting key: {key}",
            )
        return definition

    @staticmethod
    def _validate(definition: SettingDefinition, value: str) -> str:
        if definition.type == "number":
            try:
                float(value)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"'{definition.label}' must be a number",
                )
            return value.strip()
        if definition.type == "boolean":
            if value not in BOOLEAN_VALUES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"'{definition.label}' must be True/False or 1/0",
                )
            return value
        if definition.type == "json":
            try:
                json.loads(value)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"'{definition.label}' must be valid JSON",
                )
        return value

    @staticmethod
    def _to_read(definition: SettingDefinition, row: WebsiteSetting | None) -> SettingRead:
        raw = row.value if row is not None and row.value is not None else definition.default
        return SettingRead(
            key=definition.key,
            label=definition.label,
            description=definition.description,
            type=definition.type,
            group=definition.group,
            default=definition.default,
            value=raw,
            parsed=parse_value(raw, definition.type),
            update_by=row.update_by if row else None,
            update_at=row.update_at if row else None,
        )

    # ----- Typed reads used by business logic -----

    def get_raw(self, session: Session, key: str) -> str:
        definition = self._definition(key)
        row = self.repo.get(session, key)
        if row is None or row.value is None:
            return definition.default
        return row.value

    def get_number(self, session: Session, key: str) -> float:
        value = parse_value(self.get_raw(session, key), "number")
        if value is None:
            # A malformed stored number falls back to the default
            value = float(self._definition(key).default)
        return value

    def get_bool(self, session: Session, key: str) -> bool:
        return parse_value(self.get_raw(session, key), "boolean")

    # ----- Public / admin views -----

    def list_settings(self, session: Session, group: str | None = None) -> list[SettingRead]:
        rows = {row.key: row for row in self.repo.list_settings(session)}
        return [
            self._to_read(d, rows.get(d.key))
            for d in SETTING_DEFINITIONS
            if group is None or d.group == group
        ]

    def public_settings(self, session: Session) -> dict[str, Any]:
        """Parsed values keyed by setting key, for the storefront."""
        return {s.key: s.parsed for s in self.list_settings(session)}

    def get_setting(self, session: Session, key: str) -> SettingRead:
        definition = self._definition(key)
        return self._to_read(definition, self.repo.get(session, key))

    def update_setting(
        self,
        session: Session,
        key: str,
        value: str,
        actor: User,
    ) -> SettingRead:
        """
        Validate and store a new value, recording the change in history.

        Raises:
            HTTPException(404): unknown key.
            HTTPException(400): value does not match the key's type.
        """
        definition = self._definition(key)
        value = self._validate(definition, value)

        row = self.repo.get(session, key)
        old_value = row.value if row is not None else None
        if row is None:
            row = WebsiteSetting(key=key)

        row.value = value
        row.update_by = actor.id
        row.update_at = datetime.now(timezone.utc)

        history = WebsiteSettingHistory(
            key=key,
            old_value=old_value,
            new_value=value,
            changed_by=actor.id,
        )
        row = self.repo.save(session, row, history)
        logger.info("Setting %s changed by user id=%s", key, actor.id)
        return self._to_read(definition, row)

    def upload_image(
        self,
        session: Session,
        key: str,
        content_type: str | None,
        file_bytes: bytes,
        actor: User,
    ) -> SettingRead:
        """Upload an image for an `image` setting and store its public URL."""
        definition = self._definition(key)
        if definition.type != "image":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"'{definition.label}' is not an image setting",
            )

        ext = validate_image(content_type, file_bytes, IMAGE_CONTENT_TYPES)
        url = upload_to_storage(
            f"settings/{key.lower()}/{generate_filename(ext)}", file_bytes, content_type
        )

        previous = self.get_raw(session, key)
        updated = self.update_setting(session, key, url, actor)

        if previous:
            delete_public_url(previous)
        return updated

    def history(self, session: Session, key: str, limit: int = 20) -> list[SettingHistoryRead]:
        self._definition(key)
        rows = self.repo.history(session, key, limit)
        names = self.user_repo.names_by_id(session, {r.changed_by for r in rows if r.changed_by})
        return [
            SettingHistoryRead(
                **row.model_dump(),
                changed_by_name=names.get(row.changed_by),
            )
            for row in rows
        ]
