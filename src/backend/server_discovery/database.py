"""Engine and session factory shared by the API, the scheduler and the console script."""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from server_discovery.config import settings

async_engine = create_async_engine(settings.DB_URL, pool_pre_ping=True)

# rows are read after their session commits (status, audit snapshots)
AsyncSessionLocal = async_sessionmaker(async_engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session. An exception escaping the route rolls it back."""
    session = AsyncSessionLocal()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
