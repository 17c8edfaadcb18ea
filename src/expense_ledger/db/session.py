"""Database session management with transaction utilities.

This module provides:
- AsyncSession factory for dependency injection
- The ``transactional`` context manager every ledger mutation runs inside
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from expense_ledger.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict[str, Any]:
    """Pool options for the configured backend.

    Pool sizing is only applied to server databases; SQLite keeps
    SQLAlchemy's default pool for its dialect.
    """
    options: dict[str, Any] = {"echo": settings.DB_ECHO}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    return options


# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency for route handlers.

    Services commit their own units of work through ``transactional``; this
    dependency commits whatever is left pending and rolls back on error.

    Yields:
        AsyncSession: Database session for the request

    Example:
        ```python
        @router.get("/accounts")
        async def list_accounts(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Account))
            return result.scalars().all()
        ```
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transactional(
    db: AsyncSession,
    *,
    commit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Explicit transaction context manager with automatic commit/rollback.

    Every ledger mutation (balance adjustments plus the record write) runs
    inside one of these blocks, so either all of its writes land or none do.

    Args:
        db: The database session
        commit: Whether to commit on success (default: True)

    Yields:
        AsyncSession: The database session

    Raises:
        Exception: Re-raises any exception after rollback

    Example:
        ```python
        async with transactional(db):
            account.balance -= amount
            db.add(transaction)
            # Auto-commits on success, auto-rollbacks on exception
        ```
    """
    try:
        yield db
        if commit:
            await db.commit()
            logger.debug("Transaction committed successfully")
    except Exception as e:
        await db.rollback()
        logger.error(f"Transaction rolled back due to error: {type(e).__name__}: {e}")
        raise

