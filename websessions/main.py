import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from websessions.api import session as session_api
from websessions.core.config import Settings, settings as default_settings
from websessions.core.utils.logging_config import init_application_logging, set_correlation_id
from websessions.db.session import create_db_engine
from websessions.stores.sql import SQLStore

logger = logging.getLogger("websessions.main")


def create_store(settings: Settings) -> SQLStore:
    """Build the SQL session store described by settings"""
    engine = create_db_engine(settings.DATABASE_URL)
    store = SQLStore(
        engine,
        settings.SESSION_TABLE,
        settings.SESSION_COOKIE_PATH,
        settings.SESSION_MAX_AGE,
        *settings.key_pairs(),
    )
    store.options.secure = settings.SESSION_SECURE
    store.options.http_only = settings.SESSION_HTTP_ONLY
    return store


def create_app(settings: Optional[Settings] = None, store: Optional[SQLStore] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-derived defaults
        store: Pre-built store, mostly for tests

    Returns:
        Configured FastAPI app with the session store on app.state
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.session_store.close()
        logger.info("Session store closed")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Server-side sessions backed by a relational store",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session_store = store or create_store(settings)
    app.state.session_cookie_name = settings.SESSION_COOKIE_NAME

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        set_correlation_id(request.headers.get("X-Request-ID") or str(uuid.uuid4()))
        return await call_next(request)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    app.include_router(session_api.router, prefix="/session", tags=["Session"])

    logger.info(
        "Session store initialized: table=%s, max_age=%s",
        settings.SESSION_TABLE,
        settings.SESSION_MAX_AGE,
    )
    return app


def get_app() -> FastAPI:
    """Application factory for ASGI servers"""
    init_application_logging()
    return create_app()
