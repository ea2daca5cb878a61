"""Database engine, session management, and resilience utilities."""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy import text
import asyncio
from .config import settings
from .logger import logger

# ==================== Engine Setup ====================


def _engine_options() -> dict:
    """Pool and driver options for the configured backend.

    SQLite (local development and tests) gets the driver defaults; the
    pool and asyncpg timeouts only apply to PostgreSQL.
    """
    options = {"echo": False, "pool_pre_ping": True}
    if settings.is_sqlite:
        return options
    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        connect_args={
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "command_timeout": settings.DB_QUERY_TIMEOUT,
        },
    )
    return options


engine = create_async_engine(settings.DB_URL, **_engine_options())

if not settings.is_sqlite:
    logger.info(
        f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
        f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
    )

async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

Base = declarative_base()


async def init_models() -> None:
    """Create the documents table if it does not exist yet."""
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Document store ready")

# ==================== Database Resilience ====================

_RETRYABLE_MARKERS = (
    "connection",
    "timeout",
    "database is locked",
    "server closed the connection",
)


async def retry_on_db_error(func, max_retries: int = 3, base_delay: float = 0.5):
    """Retry a database call with exponential backoff.

    Only connection-level failures are retried; anything else is raised on
    the first attempt. Request handlers never go through this, so a failed
    write surfaces to the client instead of being replayed.

    Args:
        func: Async callable to run
        max_retries: Maximum number of attempts
        base_delay: Initial delay in seconds (doubles each retry)
    """
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func()
        except (OperationalError, DBAPIError) as e:
            last_exception = e
            error_msg = str(e).lower()
            is_retryable = any(marker in error_msg for marker in _RETRYABLE_MARKERS)

            if not is_retryable or attempt == max_retries - 1:
                logger.error(
                    f"Database operation failed (attempt {attempt + 1}/{max_retries}): {str(e)}",
                    exc_info=True
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"Database error on attempt {attempt + 1}/{max_retries}, "
                f"retrying in {delay}s: {str(e)}"
            )
            await asyncio.sleep(delay)

    raise last_exception


async def check_db_connection() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async def _check():
            async with async_session() as session:
                await session.execute(text("SELECT 1"))

        await retry_on_db_error(
            _check,
            max_retries=settings.DB_RETRY_MAX_ATTEMPTS,
            base_delay=settings.DB_RETRY_BASE_DELAY,
        )
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False

# ==================== Cleanup ====================

async def dispose_engine():
    """Close all pooled connections during shutdown."""
    logger.info("Disposing database engine and closing connections")
    try:
        await engine.dispose()
        logger.info("Database connections closed successfully")
    except Exception as e:
        logger.error(f"Error disposing database engine: {str(e)}", exc_info=True)
