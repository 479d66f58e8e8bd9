# app/repositories/user_repo.py
from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.models.cart import CartItem
from app.models.order import Order
from app.models.user import User, Address


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_username(self, session: Session, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return session.exec(stmt).first()

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return session.exec(stmt).first()

    def get_by_login(self, session: Session, login: str) -> User | None:
        """Match either the username or the email (case-insensitive)."""
        stmt = select(User).where(
            or_(User.username == login, func.lower(User.email) == login.lower())
        )
        return session.exec(stmt).first()

    def list_users(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
        access_level: int | None = None,
    ) -> list[User]:
        """
        Paginated user listing.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
            search: substring of username, full name or email
            access_level: only users at this level
        """
        stmt = select(User)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.username).like(pattern),
                    func.lower(User.full_name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )
        if access_level is not None:
            stmt = stmt.where(User.access_level == access_level)
        stmt = stmt.order_by(User.id).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def count_by_level(self, session: Session, level: int) -> int:
        stmt = select(func.count()).select_from(User).where(User.access_level == level)
        return int(session.exec(stmt).one() or 0)

    def names_by_id(self, session: Session, user_ids: set[int]) -> dict[int, str]:
        """Map user ids to display names for audit columns."""
        if not user_ids:
            return {}
        stmt = select(User.id, User.full_name).where(User.id.in_(user_ids))
        return {uid: name for uid, name in session.exec(stmt).all()}

    def get_many(self, session: Session, user_ids: set[int]) -> dict[int, User]:
        if not user_ids:
            return {}
        stmt = select(User).where(User.id.in_(user_ids))
        return {u.id: u for u in session.exec(stmt).all()}

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def count_orders(self, session: Session, user_id: int) -> int:
        stmt = select(func.count()).select_from(Order).where(Order.user_id == user_id)
        return int(session.exec(stmt).one() or 0)

    def delete(self, session: Session, user: User) -> None:
        """Delete a User together with their addresses and cart rows."""
        for model in (Address, CartItem):
            stmt = select(model).where(model.user_id == user.id)
            for row in session.exec(stmt).all():
                session.delete(row)
        session.flush()
        session.delete(user)
        session.commit()


class AddressRepository:
    """
    Data access layer for Address.

    No commits in the default-flag helpers: the service changes several
    rows and commits once.
    """

    def get_by_id(self, session: Session, address_id: int) -> Address | None:
        return session.get(Address, address_id)

    def list_for_user(self, session: Session, user_id: int) -> list[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at, Address.id)
        )
        return session.exec(stmt).all()

    def oldest_for_user(
        self,
        session: Session,
        user_id: int,
        exclude_id: int | None = None,
    ) -> Address | None:
        stmt = select(Address).where(Address.user_id == user_id)
        if exclude_id is not None:
            stmt = stmt.where(Address.id != exclude_id)
        stmt = stmt.order_by(Address.created_at, Address.id)
        return session.exec(stmt).first()

    def clear_default(self, session: Session, user_id: int, exclude_id: int | None = None) -> None:
        stmt = select(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
        for row in session.exec(stmt).all():
            if row.id != exclude_id:
                row.is_default = False
                session.add(row)
        session.flush()

    def add(self, session: Session, address: Address) -> Address:
        session.add(address)
        session.flush()
        return address

    def delete(self, session: Session, address: Address) -> None:
        """Delete an address; orders keep their own snapshot of it."""
        stmt = select(Order).where(Order.address_id == address.id)
        for order in session.exec(stmt).all():
            order.address_id = None
            session.add(order)
        session.delete(address)
        session.flush()
