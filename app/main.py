# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.logger import setup_logging
from app.database import create_db_and_tables, engine

# Import models so SQLModel metadata is populated before create_all()
from app.models import access as _access_models  # noqa: F401
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import setting as _setting_models  # noqa: F401
from app.models import contact as _contact_models  # noqa: F401

from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import UserRepository
from app.services.access_service import AccessService
from app.services.user_service import UserService

# Routers
from app.routers.auth import router as auth_router
from app.routers.address import router as address_router
from app.routers.users import router as users_router
from app.routers.access import router as access_router
from app.routers.products import router as products_router
from app.routers.products import admin_router as admin_products_router
from app.routers.cart import router as cart_router
from app.routers.orders import router as orders_router
from app.routers.admin_orders import router as admin_orders_router
from app.routers.admin_stats import router as admin_stats_router
from app.routers.settings import router as settings_router
from app.routers.contact import router as contact_router
from app.routers.cron import router as cron_router

settings = get_settings()

logger = logging.getLogger(__name__)


def bootstrap(session: Session) -> None:
    """
    Seed the built-in access levels and the optional first admin.
    """
    user_repo = UserRepository()
    access_repo = AccessRepository()
    AccessService(access_repo, user_repo).seed_defaults(session)
    UserService(user_repo, access_repo).ensure_first_admin(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Configure logging.
      - Verify DB connectivity and create tables.
      - Seed access levels and the bootstrap admin.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    setup_logging()
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        with Session(engine) as session:
            bootstrap(session)
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception:
        logger.exception("Startup: DB initialisation FAILED")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error bodies: every non-2xx response carries `message` ---


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = {"message": exc.detail.get("message", "Request failed"), **exc.detail}
    else:
        body = {"message": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"message": "Invalid request", "errors": exc.errors()}),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(address_router, prefix=settings.API_PREFIX)
app.include_router(users_router, prefix=settings.API_PREFIX)
app.include_router(access_router, prefix=settings.API_PREFIX)
app.include_router(products_router, prefix=settings.API_PREFIX)
app.include_router(admin_products_router, prefix=settings.API_PREFIX)
app.include_router(cart_router, prefix=settings.API_PREFIX)
app.include_router(orders_router, prefix=settings.API_PREFIX)
app.include_router(admin_orders_router, prefix=settings.API_PREFIX)
app.include_router(admin_stats_router, prefix=settings.API_PREFIX)
app.include_router(settings_router, prefix=settings.API_PREFIX)
app.include_router(contact_router, prefix=settings.API_PREFIX)
app.include_router(cron_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "buildmart-backend"}
