# app/repositories/cart_repo.py
from sqlmodel import Session, select

from app.models.cart import CartItem


class CartRepository:

    # Get items for a user
    def list_for_user(self, session: Session, user_id: int) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        return session.exec(stmt).all()

    def get_item(self, session: Session, user_id: int, product_id: int) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    # CRUD
    def create(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear_user_cart(self, session: Session, user_id: int, commit: bool = True) -> None:
        """
        Remove every cart row of a user.

        Checkout passes commit=False so the clear lands in its own transaction.
        """
        for row in self.list_for_user(session, user_id):
            session.delete(row)
        if commit:
            session.commit()
        else:
            session.flush()

    def delete_for_product(self, session: Session, product_id: int) -> None:
        stmt = select(CartItem).where(CartItem.product_id == product_id)
        for row in session.exec(stmt).all():
            session.delete(row)
        session.flush()
