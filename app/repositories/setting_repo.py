# app/repositories/setting_repo.py
from sqlmodel import Session, select

from app.models.setting import WebsiteSetting, WebsiteSettingHistory


class SettingRepository:
    """
    Data access layer for stored website settings and their history.
    """

    def get(self, session: Session, key: str) -> WebsiteSetting | None:
        return session.get(WebsiteSetting, key)

    def list_settings(self, session: Session) -> list[WebsiteSetting]:
        return session.exec(select(WebsiteSetting)).all()

    def save(
        self,
        session: Session,
        setting: WebsiteSetting,
        history: WebsiteSettingHistory,
    ) -> WebsiteSetting:
        """Write the new value and its history row in one transaction."""
        session.add(setting)
        session.add(history)
        session.commit()
        session.refresh(setting)
        return setting

    def history(self, session: Session, key: str, limit: int = 20) -> list[WebsiteSettingHistory]:
        stmt = (
            select(WebsiteSettingHistory)
            .where(WebsiteSettingHistory.key == key)
            .order_by(WebsiteSettingHistory.changed_at.desc(), WebsiteSettingHistory.id.desc())
            .limit(limit)
        )
        return session.exec(stmt).all()
