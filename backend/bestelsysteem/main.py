# backend/bestelsysteem/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bestelsysteem import __version__
from bestelsysteem.api import (
    auth_router,
    catalog_router,
    orders_router,
    realtime_router,
    stats_router,
    systems_router,
    topology_router,
)
from bestelsysteem.auth import AuthService
from bestelsysteem.config import Settings
from bestelsysteem.exceptions import BestelError
from bestelsysteem.logging_config import configure_logging
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.services.catalog import CatalogStore
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.services.orders import OrderEngine
from bestelsysteem.services.statistics import StatisticsService
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.services.topology import TopologyStore
from bestelsysteem.storage import InMemoryStorage, SQLAlchemyStorage, Storage
from bestelsysteem.utils.time_utils import set_local_timezone

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    """Select the storage backend from STORAGE_BACKEND."""
    if settings.storage_backend == "sqlalchemy":
        return SQLAlchemyStorage(settings.database_url, use_alembic=settings.use_alembic)
    if settings.storage_backend == "inmemory":
        return InMemoryStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r} (expected 'inmemory' or 'sqlalchemy')")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[App] Bestelsysteem {__version__} started with {type(app.state.storage).__name__}")
    yield
    # Pending throttled notifications are dropped on shutdown
    app.state.bus.close()
    app.state.storage.close()
    logger.info("[App] Shutdown complete")


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    """
    Build the FastAPI application and wire the services into app.state.

    Args:
        settings: configuration, read from the environment when omitted
        storage: storage backend, built from settings when omitted
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    set_local_timezone(settings.timezone)
    storage = storage or build_storage(settings)

    app = FastAPI(title="Bestelsysteem", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    bus = NotificationBus(
        order_changed_window=settings.order_changed_throttle_seconds,
        data_changed_window=settings.data_changed_throttle_seconds,
    )
    product_cache = KeyedCache("products", ttl_seconds=settings.product_cache_ttl_seconds)
    settings_cache = KeyedCache("system-settings")
    auth = AuthService(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )
    systems = SystemSettingsService(
        storage,
        auth,
        settings_cache,
        default_user_password=settings.default_user_password,
        default_admin_password=settings.default_admin_password,
        product_cache=product_cache,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.bus = bus
    app.state.auth = auth
    app.state.product_cache = product_cache
    app.state.settings_cache = settings_cache
    app.state.systems = systems
    app.state.catalog = CatalogStore(storage, product_cache)
    app.state.topology = TopologyStore(storage, bus)
    app.state.orders = OrderEngine(
        storage,
        product_cache,
        bus,
        systems,
        max_quantity=settings.max_item_quantity,
    )
    app.state.statistics = StatisticsService(storage, systems)

    @app.exception_handler(BestelError)
    async def bestel_error_handler(request: Request, exc: BestelError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        if exc.status_code >= 500:
            logger.error(f"[App] {request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)

    app.include_router(auth_router.router)
    app.include_router(systems_router.router)
    app.include_router(catalog_router.router)
    app.include_router(topology_router.router)
    app.include_router(orders_router.router)
    app.include_router(stats_router.router)
    app.include_router(realtime_router.router)

    return app


app = create_app()
