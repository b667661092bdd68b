from contextlib import asynccontextmanager
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from typing import Optional, AsyncGenerator
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


_async_engine = None
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_kwargs(database_url: str) -> dict:
    """Pool and driver options; the pooled asyncpg settings only apply to PostgreSQL."""
    if database_url.startswith("postgresql+asyncpg"):
        return {
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_recycle": 900,
            "pool_timeout": 30,
            "connect_args": {
                "prepared_statement_cache_size": 0,
                "timeout": 60,
                "command_timeout": 300,
                "server_settings": {
                    "tcp_keepalives_idle": "30",
                    "tcp_keepalives_interval": "10",
                    "tcp_keepalives_count": "3",
                },
            },
        }
    return {"connect_args": {"check_same_thread": False}} if database_url.startswith("sqlite") else {}


def get_async_engine():
    """Get or create the async engine (lazy initialization)."""
    global _async_engine
    if _async_engine is None:
        database_url = settings.DATABASE_URL_ASYNC
        _async_engine = create_async_engine(database_url, echo=False, **_engine_kwargs(database_url))
        logger.info("✅ Async engine created")
    return _async_engine


def get_async_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session maker."""
    global _async_session_maker

    if _async_session_maker is None:
        engine = get_async_engine()
        _async_session_maker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("✅ Async session maker created")

    return _async_session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting an async session."""
    session_maker = get_async_session_maker()
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def unit_of_work(session: AsyncSession):
    """
    Transactional boundary for one engine operation.

    The guard checks and the writes they protect run inside the same
    transaction: commit when the block finishes, roll back on any error.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


# Create tables
async def create_tables():
    """Create all tables asynchronously."""
    try:
        engine = get_async_engine()
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("✅ Database tables created/verified")
    except Exception as e:
        logger.error(f"❌ Failed to create tables: {e}")
        raise
