# app/repositories/access_repo.py
from sqlmodel import Session, select

from app.models.access import AccessLevel


class AccessRepository:
    """
    Data access layer for access levels.
    """

    def get(self, session: Session, level: int) -> AccessLevel | None:
        return session.get(AccessLevel, level)

    def list_levels(self, session: Session) -> list[AccessLevel]:
        stmt = select(AccessLevel).order_by(AccessLevel.level)
        return session.exec(stmt).all()

    def create(self, session: Session, access: AccessLevel) -> AccessLevel:
        session.add(access)
        session.commit()
        session.refresh(access)
        return access

    def update(self, session: Session, access: AccessLevel) -> AccessLevel:
        session.add(access)
        session.commit()
        session.refresh(access)
        return access

    def delete(self, session: Session, access: AccessLevel) -> None:
        session.delete(access)
        session.commit()
