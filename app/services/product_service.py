# app/services/product_service.py
import logging

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    IMAGE_CONTENT_TYPES,
    delete_public_url,
    generate_filename,
    upload_to_storage,
    validate_image,
)
from app.models.product import Category, Product
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import CategoryRepository, ProductRepository
from app.repositories.stats_repo import StatsRepository
from app.schemas.product import (
    CategoryCreate,
    CategoryTree,
    CategoryUpdate,
    ProductAdminRead,
    ProductCreate,
    ProductAdminListResponse,
    ProductListResponse,
    ProductRead,
    ProductUpdate,
    TopCategory,
    TopSellingFeed,
)

logger = logging.getLogger(__name__)

# main -> sub -> child
MAX_CATEGORY_DEPTH = 3


class CategoryService:
    """
    Business logic for the category tree.

    Rules:
      - a category can be nested at most MAX_CATEGORY_DEPTH levels deep
      - a category cannot become its own ancestor
      - a category with children or products cannot be deleted
    """

    def __init__(self, repo: CategoryRepository):
        self.repo = repo

    def get_category(self, session: Session, category_id: int) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def _depth(self, session: Session, category: Category) -> int:
        """1 for a main category, 2 for sub, 3 for child."""
        depth = 1
        parent_id = category.parent_id
        while parent_id is not None:
            depth += 1
            parent = self.repo.get_by_id(session, parent_id)
            if parent is None or depth > MAX_CATEGORY_DEPTH + 1:
                break
            parent_id = parent.parent_id
        return depth

    def _subtree_height(self, session: Session, category_id: int) -> int:
        children = self.repo.children_of(session, category_id)
        if not children:
            return 1
        return 1 + max(self._subtree_height(session, c.id) for c in children)

    def _validate_parent(
        self,
        session: Session,
        parent_id: int | None,
        category_id: int | None = None,
    ) -> None:
        if parent_id is None:
            return
        parent = self.get_category(session, parent_id)

        # Walk up from the new parent; meeting ourselves means a cycle
        node = parent
        while node is not None:
            if category_id is not None and node.id == category_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A category cannot be moved under itself",
                )
            node = self.repo.get_by_id(session, node.parent_id) if node.parent_id else None

        height = self._subtree_height(session, category_id) if category_id else 1
        if self._depth(session, parent) + height > MAX_CATEGORY_DEPTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Categories can only be nested {MAX_CATEGORY_DEPTH} levels deep",
            )

    def descendant_ids(self, session: Session, category_id: int) -> list[int]:
        """The category itself plus every category below it."""
        ids = [category_id]
        for child in self.repo.children_of(session, category_id):
            ids.extend(self.descendant_ids(session, child.id))
        return ids

    def tree(self, session: Session) -> list[CategoryTree]:
        categories = self.repo.list_all(session)
        nodes = {
            c.id: CategoryTree(id=c.id, name=c.name, parent_id=c.parent_id, children=[])
            for c in categories
        }
        roots: list[CategoryTree] = []
        for c in categories:
            node = nodes[c.id]
            if c.parent_id is not None and c.parent_id in nodes:
                nodes[c.parent_id].children.append(node)
            else:
                roots.append(node)
        return roots

    def list_flat(self, session: Session) -> list[Category]:
        return self.repo.list_all(session)

    def create_category(self, session: Session, payload: CategoryCreate) -> Category:
        self._validate_parent(session, payload.parent_id)
        category = Category(name=payload.name, parent_id=payload.parent_id)
        return self.repo.create(session, category)

    def update_category(
        self,
        session: Session,
        category_id: int,
        payload: CategoryUpdate,
    ) -> Category:
        category = self.get_category(session, category_id)

        if "parent_id" in payload.model_fields_set and payload.parent_id != category.parent_id:
            self._validate_parent(session, payload.parent_id, category.id)
            category.parent_id = payload.parent_id

        if payload.name is not None:
            category.name = payload.name

        return self.repo.update(session, category)

    def delete_category(self, session: Session, category_id: int) -> None:
        category = self.get_category(session, category_id)

        if self.repo.children_of(session, category_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Category has sub-categories",
            )
        if self.repo.count_products(session, category_id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Category still has products",
            )

        self.repo.delete(session, category)


class ProductService:
    """
    Business logic for Product.

    Responsibilities:
      - storefront listing (visible only, category subtree, name/brand search)
      - stock receipts against the perpetual inventory counters
      - image upload/delete orchestration with Supabase
      - admin-only operations (enforced at router via require_permission)
    """

    def __init__(
        self,
        repo: ProductRepository,
        category_service: CategoryService,
        cart_repo: CartRepository,
        order_repo: OrderRepository,
        stats_repo: StatsRepository,
    ):
        self.repo = repo
        self.category_service = category_service
        self.cart_repo = cart_repo
        self.order_repo = order_repo
        self.stats_repo = stats_repo

    # ----- Queries -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        category_id: int | None = None,
        search: str | None = None,
        only_visible: bool = True,
    ) -> ProductListResponse | ProductAdminListResponse:
        category_ids = None
        if category_id is not None:
            self.category_service.get_category(session, category_id)
            category_ids = self.category_service.descendant_ids(session, category_id)

        search = search.strip() if search else None
        products = self.repo.list_products(
            session,
            skip=skip,
            limit=limit,
            category_ids=category_ids,
            search=search,
            only_visible=only_visible,
        )
        total = self.repo.count(
            session, category_ids=category_ids, search=search, only_visible=only_visible
        )
        if only_visible:
            return ProductListResponse(
                items=[ProductRead.model_validate(p) for p in products],
                total=total,
                skip=skip,
                limit=limit,
            )
        return ProductAdminListResponse(
            items=[ProductAdminRead.model_validate(p) for p in products],
            total=total,
            skip=skip,
            limit=limit,
        )

    def top_selling(
        self,
        session: Session,
        product_limit: int = 8,
        category_limit: int = 4,
    ) -> TopSellingFeed:
        return TopSellingFeed(
            top_categories=[
                TopCategory(category_id=cid, name=name, total_quantity=int(qty or 0))
                for cid, name, qty in self.stats_repo.top_categories(session, limit=category_limit)
            ],
            products=[
                ProductRead.model_validate(p)
                for p in self.stats_repo.best_sellers(session, limit=product_limit)
            ],
        )

    def get_product(self, session: Session, product_id: int) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_visible_product(self, session: Session, product_id: int) -> ProductRead:
        """Hidden products look missing on the storefront."""
        product = self.get_product(session, product_id)
        if not product.visibility:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return ProductRead.model_validate(product)

    def get_admin_product(self, session: Session, product_id: int) -> ProductAdminRead:
        return ProductAdminRead.model_validate(self.get_product(session, product_id))

    # ----- Mutations -----

    def create_product(self, session: Session, payload: ProductCreate) -> ProductAdminRead:
        if payload.category_id is not None:
            self.category_service.get_category(session, payload.category_id)

        product = self.repo.create(session, Product(**payload.model_dump()))
        logger.info("Product id=%s created", product.id)
        return ProductAdminRead.model_validate(product)

    def update_product(
        self,
        session: Session,
        product_id: int,
        payload: ProductUpdate,
    ) -> ProductAdminRead:
        """
        Partial update of a product.

        Stock counters are not editable here; use add_stock.
        """
        product = self.get_product(session, product_id)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("category_id") is not None:
            self.category_service.get_category(session, changes["category_id"])

        nullable = {"category_id", "discount_price", "brand", "description", "dimensions", "material"}
        for key, value in changes.items():
            if value is None and key not in nullable:
                continue
            setattr(product, key, value)

        if product.discount_price is not None and product.discount_price >= product.sale_price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="discount_price must be lower than sale_price",
            )

        return ProductAdminRead.model_validate(self.repo.update(session, product))

    def add_stock(self, session: Session, product_id: int, amount: int) -> ProductAdminRead:
        product = self.get_product(session, product_id)
        product.quantity += amount
        product = self.repo.update(session, product)
        logger.info("Stock +%s for product id=%s (available %s)", amount, product.id, product.available_stock)
        return ProductAdminRead.model_validate(product)

    def delete_product(self, session: Session, product_id: int) -> None:
        """
        Delete a product and its image.

        Past orders keep their item snapshots; the product reference on
        those items is cleared.
        """
        product = self.get_product(session, product_id)
        image_url = product.image_url

        self.cart_repo.delete_for_product(session, product.id)
        self.order_repo.detach_product(session, product.id)
        self.repo.delete(session, product)

        if image_url:
            delete_public_url(image_url)
        logger.info("Product id=%s deleted", product_id)

    def set_image(
        self,
        session: Session,
        product_id: int,
        content_type: str | None,
        file_bytes: bytes,
    ) -> ProductAdminRead:
        """
        Upload or replace the image of a product.

        - Validates content type + size.
        - Deletes the old image from Storage after the new one is saved.
        """
        product = self.get_product(session, product_id)
        ext = validate_image(content_type, file_bytes, IMAGE_CONTENT_TYPES)

        previous = product.image_url
        path = f"products/{product.id}/{generate_filename(ext)}"
        product.image_url = upload_to_storage(path, file_bytes, content_type)
        product = self.repo.update(session, product)

        if previous:
            delete_public_url(previous)
        return ProductAdminRead.model_validate(product)
