import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from cricketstore.api.routes import admin_users as admin_user_routes
from cricketstore.api.routes import auth as auth_routes
from cricketstore.api.routes import cart as cart_routes
from cricketstore.api.routes import categories as category_routes
from cricketstore.api.routes import orders as order_routes
from cricketstore.api.routes import products as product_routes
from cricketstore.api.routes import wishlist as wishlist_routes
from cricketstore.config import Settings, get_settings
from cricketstore.core.errors import register_exception_handlers
from cricketstore.core.identity import IdentityProvider
from cricketstore.core.rate_limit import RateLimiter
from cricketstore.database import FileBackedDB
from cricketstore.middleware.cors_config import configure_cors
from cricketstore.middleware.security_headers import add_security_headers

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: run startup checks before the app starts serving,
    and log shutdown.
    """
    settings: Settings = app.state.settings
    db: FileBackedDB = app.state.db

    users_path = db._file_path("users")
    if not users_path.exists():
        logger.warning(
            "Users file not found at %s. Run scripts/seed_db.py or register an account.",
            users_path,
        )
    else:
        logger.info("Found users file: %s", users_path)

    if settings.RATE_LIMIT_ENABLED:
        logger.info(
            "Rate limiting on (%s, storage %s): strict=%s moderate=%s relaxed=%s",
            settings.RATE_LIMIT_STRATEGY,
            settings.RATE_LIMIT_STORAGE_URI,
            settings.RATE_LIMIT_STRICT,
            settings.RATE_LIMIT_MODERATE,
            settings.RATE_LIMIT_RELAXED,
        )
    else:
        logger.warning("Rate limiting is disabled")

    if not settings.is_development and settings.JWT_SECRET == Settings.model_fields["JWT_SECRET"].default:
        logger.warning("JWT_SECRET is the development default; set it in the environment")

    yield
    logger.info("Shutting down Cricket Store API")


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[FileBackedDB] = None,
    rate_limiter: Optional[RateLimiter] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """
    Build the application. Services are constructed once here and handed to
    request handlers through `app.state`; pass any of them to override.
    """
    settings = settings or get_settings()
    db = db or FileBackedDB(settings.DATA_DIR, settings.table_files())

    app = FastAPI(title="Cricket Store API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.rate_limiter = rate_limiter or RateLimiter.from_settings(settings)
    app.state.identity_provider = identity_provider or IdentityProvider(db, settings)

    configure_cors(app, settings)
    add_security_headers(app)
    register_exception_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(category_routes.router)
    app.include_router(product_routes.router)
    app.include_router(cart_routes.router)
    app.include_router(wishlist_routes.router)
    app.include_router(order_routes.router)
    app.include_router(admin_user_routes.router)

    @app.get("/", tags=["root"])
    async def root():
        return {"status": "ok", "service": "Cricket Store API"}

    return app


app = create_app()
