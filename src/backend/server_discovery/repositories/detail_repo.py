"""Repository for the server_details table."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.models.server import ServerDetail


class DetailRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_for_server(self, server_id: int) -> ServerDetail | None:
        result = await self.session.execute(
            select(ServerDetail).where(ServerDetail.server_id == server_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        server_id: int,
        cpu_model: str,
        cpu_cores: int,
        memory_total: float,
        disk_total: float,
        os_version: str,
    ) -> ServerDetail:
        detail = ServerDetail(
            server_id=server_id,
            cpu_model=cpu_model,
            cpu_cores=cpu_cores,
            memory_total=memory_total,
            disk_total=disk_total,
            os_version=os_version,
        )
        self.session.add(detail)
        await self.session.flush()
        return detail
