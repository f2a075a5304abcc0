"""Repository for the server_services snapshots."""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.models.metrics import ServiceRecord


class ServiceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_recent(self, server_id: int, limit: int = 10) -> list[ServiceRecord]:
        result = await self.session.execute(
            select(ServiceRecord)
            .where(ServiceRecord.server_id == server_id)
            .order_by(ServiceRecord.last_checked.desc(), ServiceRecord.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def add_service(
        self,
        server_id: int,
        service_name: str,
        service_status: str,
        last_checked: datetime | None = None,
    ) -> ServiceRecord:
        record = ServiceRecord(
            server_id=server_id,
            service_name=service_name,
            service_status=service_status,
            last_checked=last_checked or datetime.now(UTC),
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def count_for_server(self, server_id: int) -> int:
        result = await self.session.execute(
            select(func.count(ServiceRecord.id)).where(ServiceRecord.server_id == server_id)
        )
        return result.scalar_one()
