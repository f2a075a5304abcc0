"""Shared fixtures: an in-memory SQLite database behind the async SQLAlchemy stack.

The application settings are instantiated at import time, so the database URL
and scheduler switch are set before anything from server_discovery is imported.
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DISCOVERY_SCHEDULER_ENABLED", "false")

import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from server_discovery.models import discovery, metrics  # noqa: E402,F401 (register tables)
from server_discovery.models.server import Base, Server  # noqa: E402


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def add_server(session_factory):
    """Insert a server row and return its id."""

    async def _add(
        hostname: str,
        os_type: str | None = "Windows Server 2019",
        server_id: int | None = None,
        region: str | None = "eu-west",
        ip: str = "10.0.0.1",
    ) -> int:
        async with session_factory() as session:
            server = Server(hostname=hostname, os_type=os_type, region=region, ip=ip)
            if server_id is not None:
                server.id = server_id
            session.add(server)
            await session.commit()
            return server.id

    return _add
