# app/routers/products.py
from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import require_permission
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import CategoryRepository, ProductRepository
from app.repositories.stats_repo import StatsRepository
from app.schemas.product import (
    CategoryCreate,
    CategoryRead,
    CategoryTree,
    CategoryUpdate,
    ProductAdminListResponse,
    ProductAdminRead,
    ProductCreate,
    ProductListResponse,
    ProductRead,
    ProductUpdate,
    StockAdd,
    TopSellingFeed,
)
from app.services.product_service import CategoryService, ProductService

router = APIRouter(tags=["Products"])
admin_router = APIRouter(prefix="/admin", tags=["Admin Products"])

category_service = CategoryService(CategoryRepository())
service = ProductService(
    ProductRepository(),
    category_service,
    CartRepository(),
    OrderRepository(),
    StatsRepository(),
)

require_stock_mgr = require_permission("stock_mgr")


# -------- Public endpoints --------


@router.get("/products", response_model=ProductListResponse)
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category_id: int | None = None,
    search: str | None = None,
):
    """
    List visible products.

    - `category_id` includes every sub-category below it.
    - `search` matches name or brand.
    """
    return service.list_products(
        session, skip=skip, limit=limit, category_id=category_id, search=search
    )


@router.get("/products/top-selling", response_model=TopSellingFeed)
def top_selling(
    session: Session = Depends(get_session),
    limit: int = Query(default=8, ge=1, le=50),
):
    """
    Home page feed: best-selling visible products and the categories
    they sell from. Cancelled and refunded orders do not count.
    """
    return service.top_selling(session, product_limit=limit)


@router.get("/products/{product_id}", response_model=ProductRead)
def get_product(
    product_id: int,
    session: Session = Depends(get_session),
):
    """
    Get a single visible product by id.
    """
    return service.get_visible_product(session, product_id)


@router.get("/categories", response_model=list[CategoryTree])
def category_tree(session: Session = Depends(get_session)):
    """
    Category tree (main -> sub -> child).
    """
    return category_service.tree(session)


# -------- Admin: products --------


@admin_router.get(
    "/products",
    response_model=ProductAdminListResponse,
    dependencies=[Depends(require_stock_mgr)],
)
def admin_list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category_id: int | None = None,
    search: str | None = None,
):
    """
    List every product, hidden ones included, with stock counters.
    """
    return service.list_products(
        session,
        skip=skip,
        limit=limit,
        category_id=category_id,
        search=search,
        only_visible=False,
    )


@admin_router.get(
    "/products/{product_id}",
    response_model=ProductAdminRead,
    dependencies=[Depends(require_stock_mgr)],
)
def admin_get_product(
    product_id: int,
    session: Session = Depends(get_session),
):
    return service.get_admin_product(session, product_id)


@admin_router.post(
    "/products",
    response_model=ProductAdminRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_stock_mgr)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    return service.create_product(session, payload)


@admin_router.patch(
    "/products/{product_id}",
    response_model=ProductAdminRead,
    dependencies=[Depends(require_stock_mgr)],
)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    return service.update_product(session, product_id, payload)


@admin_router.post(
    "/products/{product_id}/stock",
    response_model=ProductAdminRead,
    dependencies=[Depends(require_stock_mgr)],
)
def add_stock(
    product_id: int,
    payload: StockAdd,
    session: Session = Depends(get_session),
):
    """
    Receive goods: increases the base quantity by `amount`.
    """
    return service.add_stock(session, product_id, payload.amount)


@admin_router.delete(
    "/products/{product_id}",
    dependencies=[Depends(require_stock_mgr)],
)
def delete_product(
    product_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Delete a product and its image. Past orders keep their snapshots.
    """
    service.delete_product(session, product_id)
    return {"message": "Product deleted successfully"}


@admin_router.post(
    "/products/{product_id}/image",
    response_model=ProductAdminRead,
    dependencies=[Depends(require_stock_mgr)],
    summary="Upload or replace the image of a product",
)
def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    - Accepts JPEG, PNG, WEBP up to 5 MB.
    - Replaces any previous image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return service.set_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )


# -------- Admin: categories --------


@admin_router.get(
    "/categories",
    response_model=list[CategoryRead],
    dependencies=[Depends(require_stock_mgr)],
)
def list_categories(session: Session = Depends(get_session)):
    return category_service.list_flat(session)


@admin_router.post(
    "/categories",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_stock_mgr)],
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
):
    return category_service.create_category(session, payload)


@admin_router.patch(
    "/categories/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_stock_mgr)],
)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
):
    """
    Rename or move a category. Nesting is limited to three levels.
    """
    return category_service.update_category(session, category_id, payload)


@admin_router.delete(
    "/categories/{category_id}",
    dependencies=[Depends(require_stock_mgr)],
)
def delete_category(
    category_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    category_service.delete_category(session, category_id)
    return {"message": "Category deleted successfully"}
