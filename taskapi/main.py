"""FastAPI application entrypoint. No business logic; only wiring, lifecycle and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskapi.api.v1 import router as v1_router
from taskapi.core.config import Settings, get_settings
from taskapi.core.database import Database
from taskapi.core.errors import DatabaseUnavailableError, register_exception_handlers
from taskapi.core.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """
    Build the API. The database handle is opened in the lifespan (or injected, e.g. by
    tests) and exposed to handlers as app.state.db; a handle created here is disposed on
    shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = database is None
        try:
            db = database or Database.from_settings(settings)
            db.check()
        except DatabaseUnavailableError as e:
            logger.critical("Startup aborted: %s", e)
            raise
        if settings.DB_CREATE_TABLES:
            db.create_all()
        if settings.uses_default_jwt_secret:
            logger.warning(
                "JWT_SECRET is not set; tokens are signed with the built-in default secret. "
                "Configure JWT_SECRET before exposing this service."
            )
        app.state.db = db
        logger.info("Database connected (env=%s)", settings.APP_ENV)
        try:
            yield
        finally:
            if owned:
                db.dispose()
                logger.info("Database connection closed")

    app = FastAPI(
        title="Task Manager API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "API is running..."}

    return app


app = create_app()
