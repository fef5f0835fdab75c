"""Async SQLAlchemy engine and session factory.

Learn: One engine per process, one AsyncSession per request. Pool sizing
comes from settings; SQLite (tests, local tinkering) has no server-side
connection limit, so it keeps SQLAlchemy's default pool.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from headacher.config import Settings, settings


def engine_options(config: Settings) -> dict:
    """Keyword arguments for create_async_engine derived from config."""
    options = {"echo": config.debug, "pool_pre_ping": True}
    if make_url(config.database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
            pool_recycle=config.database_pool_recycle_seconds,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency: yields one session per request."""
    async with async_session_factory() as session:
        yield session
