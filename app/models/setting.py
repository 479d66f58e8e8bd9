# app/models/setting.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class WebsiteSetting(SQLModel, table=True):
    """
    Stored value of a website setting.

    Values are kept as text and parsed according to the key's definition
    (see app.services.setting_service.SETTING_DEFINITIONS). Keys without a
    row fall back to the definition's default.
    """

    __tablename__ = "website_settings"

    key: str = Field(primary_key=True, max_length=64)
    value: str | None = None

    update_by: int | None = None
    update_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class WebsiteSettingHistory(SQLModel, table=True):
    """Append-only change log for website settings."""

    __tablename__ = "website_setting_history"

    id: int | None = Field(default=None, primary_key=True)

    key: str = Field(index=True, max_length=64)
    old_value: str | None = None
    new_value: str | None = None

    changed_by: int | None = None
    changed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
