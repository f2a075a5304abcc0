"""Repository for the server_metrics time series."""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.models.metrics import MetricSample


class MetricRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_latest(self, server_id: int) -> MetricSample | None:
        """Newest sample by recorded_at; equal timestamps resolve to the highest id."""
        result = await self.session.execute(
            select(MetricSample)
            .where(MetricSample.server_id == server_id)
            .order_by(MetricSample.recorded_at.desc(), MetricSample.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def add_sample(
        self,
        server_id: int,
        cpu_usage: float,
        memory_usage: float,
        disk_usage: float,
        recorded_at: datetime | None = None,
    ) -> MetricSample:
        sample = MetricSample(
            server_id=server_id,
            cpu_usage=cpu_usage,
            memory_usage=memory_usage,
            disk_usage=disk_usage,
            recorded_at=recorded_at or datetime.now(UTC),
        )
        self.session.add(sample)
        await self.session.flush()
        return sample

    async def count_for_server(self, server_id: int) -> int:
        result = await self.session.execute(
            select(func.count(MetricSample.id)).where(MetricSample.server_id == server_id)
        )
        return result.scalar_one()
