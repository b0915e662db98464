"""
Database Connection Module
Async SQLAlchemy engine and session factory for the ledger database.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.database.base import Base

logger = logging.getLogger(__name__)

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# No connection is opened until the first query
async_engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

# Repositories open one short read-only session per fetch
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def create_ledger_tables() -> None:
    """Create the ledger tables that do not exist yet. Local development only."""
    logger.info("Creating ledger tables: %s", ", ".join(sorted(Base.metadata.tables)))
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of pooled connections on shutdown."""
    await async_engine.dispose()
