# shopcart/main.py

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.error_handlers import setup_error_handlers
from .cart.controller import router as cart_router
from .database.core import Base, engine
from .database import models  # noqa: F401  registers tables
from .logging import configure_logging
from .services.cache_backends import build_cache_store

logger = logging.getLogger(__name__)


def create_app(cache_store=None, create_tables: bool = True) -> FastAPI:
    configure_logging(settings.LOG_CONFIG_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if create_tables:
            Base.metadata.create_all(bind=engine)
        logger.info("ShopCart API started")
        yield
        logger.info("ShopCart API stopped")

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
    )
    app.state.cache_store = cache_store if cache_store is not None else build_cache_store()

    app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET_KEY)
    setup_error_handlers(app)
    app.include_router(cart_router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "version": settings.API_VERSION}

    return app
