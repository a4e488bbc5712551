import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from warehouse_assistant.configuration.config import Settings, get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine; pool settings only apply to PostgreSQL."""
    url = config.sqlalchemy_url
    kwargs: dict[str, Any] = {"echo": config.log_level.upper() == "DEBUG"}
    if url.startswith("postgresql"):
        kwargs.update(
            pool_size=config.postgres_pool_size,
            max_overflow=config.postgres_max_overflow,
            pool_recycle=config.postgres_pool_recycle,
            pool_pre_ping=config.postgres_pool_pre_ping,
        )
    return create_async_engine(url, **kwargs)


engine = build_engine(settings)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def initialize_database() -> None:
    """Create all tables defined in the SQLAlchemy models."""
    from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import Base

    logger.info("Initializing database schema...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")
