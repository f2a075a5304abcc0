"""Service/port reconciler.

Read path: the most recent service snapshots of a server.

Update path: apply_payload() persists an externally collected discovery
document. The metrics row, each service row, the audit row with its open
ports and the status flip to ``online`` share one transaction: either all of
them are committed or none is.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.errors import StoreError, TransactionError
from server_discovery.models.metrics import ServiceRecord
from server_discovery.repositories.discovery_repo import DiscoveryRepository
from server_discovery.repositories.metric_repo import MetricRepository
from server_discovery.repositories.server_repo import ServerRepository
from server_discovery.repositories.service_repo import ServiceRepository
from server_discovery.schemas.discovery import DiscoveryPayload, PayloadOutcome

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_LIMIT = 10


class ServiceReconciler:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.servers = ServerRepository(session)
        self.services = ServiceRepository(session)
        self.metrics = MetricRepository(session)
        self.discoveries = DiscoveryRepository(session)

    async def load_recent_services(
        self, server_id: int, limit: int = DEFAULT_SERVICE_LIMIT
    ) -> list[ServiceRecord]:
        try:
            return await self.services.list_recent(server_id, limit=limit)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load services for server {server_id}: {exc}") from exc

    async def apply_payload(self, server_id: int, payload: DiscoveryPayload) -> PayloadOutcome:
        """Persist one discovery document for a server atomically.

        Raises NotFoundError for an unknown server and TransactionError (with
        the failing step) when any write fails; nothing is persisted then.
        """
        now = datetime.now(UTC)
        step = "lookup"
        metrics_recorded = False
        services = payload.unique_services()
        try:
            await self.servers.get_by_id(server_id)

            if payload.cpu is not None:
                step = "metrics"
                await self.metrics.add_sample(
                    server_id,
                    cpu_usage=payload.cpu.usage,
                    memory_usage=payload.memory_usage(),
                    disk_usage=payload.disk_usage(),
                    recorded_at=now,
                )
                metrics_recorded = True

            step = "services"
            for service in services:
                await self.services.add_service(
                    server_id, service.name, service.status, last_checked=now
                )

            step = "audit"
            result = await self.discoveries.create_result(
                server_id,
                success=True,
                status="completed",
                message="Discovery details ingested",
                start_time=now,
                end_time=now,
                ports=[port.model_dump() for port in payload.ports],
                os_name=payload.os.name if payload.os else None,
                os_version=payload.os.version if payload.os else None,
                last_boot_time=payload.last_boot_time,
            )

            step = "status"
            await self.servers.set_status(server_id, "online", None)

            step = "commit"
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            if isinstance(exc, SQLAlchemyError):
                logger.warning(
                    "Rolled back discovery details for server %s at step %s: %s",
                    server_id,
                    step,
                    exc,
                )
                raise TransactionError(step, str(exc)) from exc
            raise

        return PayloadOutcome(
            server_id=server_id,
            status="online",
            metrics_recorded=metrics_recorded,
            services_recorded=len(services),
            ports_recorded=len(payload.ports),
            discovery_id=result.id,
        )
