"""Repository for the server inventory.

All DB access for the servers and server_tags tables goes through this class.
Methods never commit; the calling service owns the transaction.
"""

from datetime import UTC, datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from server_discovery.discovery.profiles import DiscoveryProfile
from server_discovery.errors import NotFoundError
from server_discovery.models.discovery import DiscoveryResult
from server_discovery.models.server import Server


class ServerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, server_id: int) -> Server:
        result = await self.session.execute(select(Server).where(Server.id == server_id))
        server = result.scalar_one_or_none()
        if server is None:
            raise NotFoundError(f"Server '{server_id}' not found")
        return server

    async def get_with_details(self, server_id: int) -> Server:
        result = await self.session.execute(
            select(Server)
            .options(selectinload(Server.details), selectinload(Server.tags))
            .where(Server.id == server_id)
        )
        server = result.scalar_one_or_none()
        if server is None:
            raise NotFoundError(f"Server '{server_id}' not found")
        return server

    async def list_servers(
        self,
        region: str | None = None,
        status: str | None = None,
        os_type: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Server], int]:
        query = select(Server)
        if region:
            query = query.where(Server.region == region)
        if status:
            query = query.where(Server.status == status)
        if os_type:
            query = query.where(Server.os_type == os_type)

        count_result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        paginated = query.order_by(Server.hostname).offset((page - 1) * page_size).limit(page_size)
        rows = await self.session.execute(paginated)
        return list(rows.scalars().all()), total

    async def list_for_profile(self, profile: DiscoveryProfile) -> list[Server]:
        """Servers a profile's batch covers, in id order.

        Servers with no os_type fall to the profile that excludes the prefix.
        """
        pattern = f"{profile.os_prefix}%"
        if profile.include_prefix:
            condition = Server.os_type.like(pattern)
        else:
            condition = or_(Server.os_type.is_(None), Server.os_type.not_like(pattern))
        rows = await self.session.execute(select(Server).where(condition).order_by(Server.id))
        return list(rows.scalars().all())

    async def set_status(self, server_id: int, status: str, error_message: str | None) -> int:
        stmt = (
            update(Server)
            .where(Server.id == server_id)
            .values(status=status, last_checked=datetime.now(UTC), last_error=error_message)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_stats(self) -> dict:
        server_count = (await self.session.execute(select(func.count(Server.id)))).scalar_one()
        discovery_count = (
            await self.session.execute(select(func.count(DiscoveryResult.id)))
        ).scalar_one()
        success_count = (
            await self.session.execute(
                select(func.count(DiscoveryResult.id)).where(DiscoveryResult.success.is_(True))
            )
        ).scalar_one()

        region_rows = await self.session.execute(
            select(Server.region, func.count(Server.id)).group_by(Server.region)
        )
        status_rows = await self.session.execute(
            select(Server.status, func.count(Server.id)).group_by(Server.status)
        )

        success_rate = (success_count / discovery_count * 100) if discovery_count else 0.0
        return {
            "server_count": server_count,
            "discovery_count": discovery_count,
            "success_rate": success_rate,
            "regions": {region or "unknown": count for region, count in region_rows.all()},
            "statuses": {status: count for status, count in status_rows.all()},
        }
