"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

from taxline.api.assistant import router as assistant_router
from taxline.api.calculator import router as calculator_router
from taxline.api.health import router as health_router
from taxline.api.middleware import RequestContextMiddleware
from taxline.api.returns import router as returns_router
from taxline.core.config import settings
from taxline.core.database import create_engine, create_session_factory, create_tables
from taxline.core.logging import configure_logging, get_logger
from taxline.core.sentry import init_sentry
from taxline.persistence.store import create_return_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory (database store only)
        - Create the saved-return store

    Shutdown:
        - Dispose database engine
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    app.state.db_engine = None
    session_factory = None
    if settings.return_store == "database":
        app.state.db_engine = create_engine()
        session_factory = create_session_factory(app.state.db_engine)
        if make_url(settings.database_url).get_backend_name() == "sqlite":
            await create_tables(app.state.db_engine)
        logger.info("Database engine created")

    app.state.return_store = create_return_store(session_factory)
    logger.info("Return store created", backend=settings.return_store)

    yield

    # Shutdown
    logger.info("Shutting down application")

    if app.state.db_engine is not None:
        await app.state.db_engine.dispose()
        logger.info("Database engine disposed")


app = FastAPI(
    title="Taxline",
    description="Federal Form 1040 and Indiana IT-40 tax calculator",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware for the browser front end
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(returns_router)
app.include_router(calculator_router)
app.include_router(assistant_router)
