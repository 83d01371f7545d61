from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
import logging
from contextlib import asynccontextmanager
import re

from app.core.config import settings

logger = logging.getLogger(__name__)


# Helper to get the async driver
def get_async_driver(uri: str) -> str:
    if uri.startswith("postgresql"):
        # Replaces postgresql:// or postgresql+psycopg2:// with postgresql+asyncpg://
        return re.sub(r"postgresql(\+psycopg2)?://", "postgresql+asyncpg://", uri)
    if uri.startswith("mysql"):
        # Replaces mysql:// or mysql+pymysql:// with mysql+aiomysql://
        return re.sub(r"mysql(\+pymysql)?://", "mysql+aiomysql://", uri)
    if uri.startswith("sqlite"):
        return re.sub(r"sqlite(\+pysqlite)?://", "sqlite+aiosqlite://", uri)
    return uri


def build_engine(uri: str):
    async_uri = get_async_driver(uri)
    if async_uri.startswith("sqlite"):
        # SQLite has no server-side pool to size
        return create_async_engine(async_uri, echo=False)

    return create_async_engine(
        async_uri,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        echo=False,
    )


def build_sessionmaker(bind) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


if settings.DATABASE_URI:
    engine = build_engine(settings.DATABASE_URI)
    AsyncSessionLocal = build_sessionmaker(engine)
else:
    logger.warning("DATABASE_URI is not configured. Database features are unavailable.")
    engine = None
    AsyncSessionLocal = None


async def get_db() -> AsyncSession:
    if AsyncSessionLocal is None:
        raise ValueError("No database connection configured")

    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession):
    """
    Unit of work on an existing session: commit when the block finishes,
    roll back and re-raise when it raises.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
