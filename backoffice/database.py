from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from backoffice.config import settings
import structlog

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


# libpq sslmode values that ask for an encrypted connection
SSL_MODES = {"require", "verify-ca", "verify-full"}


def _get_db_url() -> URL:
    """asyncpg rejects the libpq sslmode parameter; SSL goes through connect_args."""
    return make_url(settings.DATABASE_URL).difference_update_query(["sslmode"])


def _ssl_required() -> bool:
    return settings.DB_SSL or make_url(settings.DATABASE_URL).query.get("sslmode") in SSL_MODES


engine: AsyncEngine = create_async_engine(
    _get_db_url(),
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=30,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args={"ssl": "require"} if _ssl_required() else {},
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    """
    One session per request. Workflows commit through the document store
    before calling the order system; whatever is still pending when the
    route returns is committed here, or rolled back if it raised.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        logger.info("db_connected")


async def close_db():
    await engine.dispose()
    logger.info("db_disconnected")
