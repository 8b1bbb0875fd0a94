import logging
from typing import AsyncGenerator
from app.core.config import settings
from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker, create_async_engine)

logger = logging.getLogger(__name__)

# --- DATABASE URL CONFIGURATION ---

db_url = settings.database_url

if not db_url:
    raise RuntimeError("DATABASE_URL is not set")

if db_url.startswith("postgresql://"):
    async_db = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
else:
    async_db = db_url


# --- ASYNC ENGINE CONFIG (FastAPI / Scripts)

engine_options = {
    "echo": False,
    "pool_pre_ping": True,
}

# SQLite (local runs and tests) has no connection pool to size
if not async_db.startswith("sqlite"):
    engine_options.update(pool_size=10, max_overflow=20)

async_engine = create_async_engine(async_db, **engine_options)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_= AsyncSession,
    expire_on_commit= False,
)


# --- FASTAPI DEPENDENCY
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI Dependency that provides an asynchronous database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            logger.debug("Database: New async session yielded for API request.")
            yield session
        except Exception as e:
            await session.rollback()
            logger.exception(f"Database: Async session error: {e}")
            raise
        finally:
            await session.close()
