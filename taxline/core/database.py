"""Async database engine factory and session management."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taxline.core.config import settings

# Import all models to register them with Base.metadata
from taxline.models import Base, SavedReturn  # noqa: F401


def create_engine(
    database_url: str | None = None,
    **engine_options: Any,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: Connection URL. Defaults to settings.database_url.
        **engine_options: Additional options passed to create_async_engine.

    Returns:
        Configured AsyncEngine instance.
    """
    url = database_url or settings.database_url

    default_options: dict[str, Any] = {"echo": settings.debug}
    if make_url(url).get_backend_name() != "sqlite":
        # sqlite uses a static pool; sizing options only apply to server databases
        default_options.update(
            {
                "pool_size": 20,
                "max_overflow": 0,
                "pool_pre_ping": True,
            }
        )
    default_options.update(engine_options)

    return create_async_engine(url, **default_options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory.

    Args:
        engine: AsyncEngine instance to bind sessions to.

    Returns:
        Configured async_sessionmaker instance.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables directly from model metadata.

    Used for sqlite development databases and tests; PostgreSQL deployments
    are managed through Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
