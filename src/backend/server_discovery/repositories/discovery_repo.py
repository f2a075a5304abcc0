"""Repository for discovery_results and their open_ports."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.models.discovery import DiscoveryResult, OpenPort


class DiscoveryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_result(
        self,
        server_id: int,
        success: bool,
        start_time: datetime,
        end_time: datetime,
        status: str | None = None,
        message: str | None = None,
        error: str | None = None,
        ports: Iterable[dict] = (),
        **snapshot,
    ) -> DiscoveryResult:
        """Insert a discovery result and its open ports.

        ``snapshot`` carries the optional os/cpu/memory/disk/boot columns.
        """
        result = DiscoveryResult(
            server_id=server_id,
            success=success,
            status=status,
            message=message,
            error=error,
            start_time=start_time,
            end_time=end_time,
            **snapshot,
        )
        result.open_ports = [OpenPort(**port) for port in ports]
        self.session.add(result)
        await self.session.flush()
        return result

    async def list_for_server(self, server_id: int, limit: int = 50) -> list[DiscoveryResult]:
        result = await self.session.execute(
            select(DiscoveryResult)
            .where(DiscoveryResult.server_id == server_id)
            .order_by(DiscoveryResult.end_time.desc(), DiscoveryResult.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_open_ports(self, server_id: int) -> list[OpenPort]:
        """Ports of the newest discovery result for the server that recorded any."""
        latest = (
            select(OpenPort.discovery_id)
            .join(DiscoveryResult, DiscoveryResult.id == OpenPort.discovery_id)
            .where(DiscoveryResult.server_id == server_id)
            .order_by(DiscoveryResult.id.desc())
            .limit(1)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(OpenPort).where(OpenPort.discovery_id == latest).order_by(OpenPort.local_port)
        )
        return list(result.scalars().all())
