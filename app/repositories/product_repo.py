# app/repositories/product_repo.py
from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.models.product import Category, Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: int) -> Product | None:
        return session.get(Product, product_id)

    def get_many(self, session: Session, product_ids: list[int]) -> dict[int, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def _filtered(
        self,
        stmt,
        category_ids: list[int] | None,
        search: str | None,
        only_visible: bool,
    ):
        if only_visible:
            stmt = stmt.where(Product.visibility == True)  # noqa: E712
        if category_ids is not None:
            stmt = stmt.where(Product.category_id.in_(category_ids))
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Product.name).like(pattern),
                    func.lower(Product.brand).like(pattern),
                )
            )
        return stmt

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        category_ids: list[int] | None = None,
        search: str | None = None,
        only_visible: bool = True,
    ) -> list[Product]:
        stmt = self._filtered(select(Product), category_ids, search, only_visible)
        stmt = stmt.order_by(Product.id.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def count(
        self,
        session: Session,
        category_ids: list[int] | None = None,
        search: str | None = None,
        only_visible: bool = True,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(Product), category_ids, search, only_visible
        )
        return int(session.exec(stmt).one() or 0)

    def list_all(self, session: Session) -> list[Product]:
        return session.exec(select(Product).order_by(Product.id)).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()


class CategoryRepository:
    """
    Data access layer for the category tree.
    """

    def get_by_id(self, session: Session, category_id: int) -> Category | None:
        return session.get(Category, category_id)

    def list_all(self, session: Session) -> list[Category]:
        return session.exec(select(Category).order_by(Category.id)).all()

    def children_of(self, session: Session, parent_id: int) -> list[Category]:
        stmt = select(Category).where(Category.parent_id == parent_id)
        return session.exec(stmt).all()

    def count_products(self, session: Session, category_id: int) -> int:
        stmt = select(func.count()).select_from(Product).where(Product.category_id == category_id)
        return int(session.exec(stmt).one() or 0)

    def create(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def update(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def delete(self, session: Session, category: Category) -> None:
        session.delete(category)
        session.commit()
