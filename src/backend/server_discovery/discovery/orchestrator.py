"""Discovery orchestrator: one batch of discovery passes for a profile.

Per server the pass runs detail -> services -> metrics in its own session and
ends in exactly one StatusRecorder call (``online`` or ``error``), made after
the pass's session is closed. A failing server never aborts the batch.

run_batch() is called by the scheduler, the manual trigger endpoint and the
console script. It never raises on individual server failures.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.discovery.profiles import DiscoveryProfile
from server_discovery.discovery.simulator import SimulatedSample, simulate_sample
from server_discovery.errors import StoreError
from server_discovery.models.server import Server, ServerDetail
from server_discovery.repositories.metric_repo import MetricRepository
from server_discovery.repositories.server_repo import ServerRepository
from server_discovery.services.detail_reconciler import DetailReconciler
from server_discovery.services.service_reconciler import DEFAULT_SERVICE_LIMIT, ServiceReconciler
from server_discovery.services.status_recorder import PassAudit, StatusRecorder

logger = logging.getLogger(__name__)


@dataclass
class PassOutcome:
    server_id: int
    status: str
    error: str = ""
    sample: SimulatedSample | None = None
    service_count: int = 0


def _hardware_snapshot(detail: ServerDetail) -> dict:
    return {
        "os_version": detail.os_version,
        "cpu_model": detail.cpu_model,
        "cpu_count": detail.cpu_cores,
        "memory_total_gb": detail.memory_total,
        "disk_total_gb": detail.disk_total,
    }


class ServerLockRegistry:
    """One asyncio.Lock per server id, so two passes never overlap on a server.

    An entry exists only while a pass holds or waits on it, so the registry
    never outgrows the set of servers currently being discovered.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, server_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(server_id, asyncio.Lock())
        self._users[server_id] = self._users.get(server_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[server_id] -= 1
            if not self._users[server_id]:
                del self._users[server_id]
                del self._locks[server_id]


class DiscoveryOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        profile: DiscoveryProfile,
        rng: random.Random,
        status_recorder: StatusRecorder,
        max_concurrency: int = 1,
        service_limit: int = DEFAULT_SERVICE_LIMIT,
        locks: ServerLockRegistry | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.profile = profile
        self._rng = rng
        self._status = status_recorder
        self.max_concurrency = max(1, max_concurrency)
        self.service_limit = service_limit
        self._locks = locks if locks is not None else ServerLockRegistry()

    async def list_eligible(self) -> list[Server]:
        async with self._session_factory() as session:
            return await ServerRepository(session).list_for_profile(self.profile)

    async def run_batch(self) -> dict[str, int]:
        """Run one pass over every server the profile covers.

        Returns {"processed": int, "online": int, "error": int}.
        """
        try:
            servers = await self.list_eligible()
        except SQLAlchemyError as exc:
            logger.warning("Failed to list %s servers: %s", self.profile.name, exc)
            return {"processed": 0, "online": 0, "error": 0}

        logger.info("Found %d %s servers", len(servers), self.profile.name)

        if self.max_concurrency == 1:
            outcomes = [await self.discover_server(server) for server in servers]
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(server: Server) -> PassOutcome:
                async with semaphore:
                    return await self.discover_server(server)

            outcomes = await asyncio.gather(*(bounded(server) for server in servers))

        online = sum(1 for outcome in outcomes if outcome.status == "online")
        counts = {"processed": len(outcomes), "online": online, "error": len(outcomes) - online}
        logger.info("%s discovery completed: %s", self.profile.name, counts)
        return counts

    async def discover_server(self, server: Server) -> PassOutcome:
        async with self._locks.hold(server.id):
            return await self._run_pass(server)

    async def _run_pass(self, server: Server) -> PassOutcome:
        logger.info("Processing server %s (%s)", server.hostname, server.ip)
        started = datetime.now(UTC)
        hardware: dict = {}
        outcome = PassOutcome(server_id=server.id, status="online")

        try:
            async with self._session_factory() as session:
                detail = await DetailReconciler(session, self.profile.catalog).ensure_details(
                    server.id
                )
                # copied out now: a later rollback expires the ORM instance
                hardware = _hardware_snapshot(detail)
                outcome.service_count = await self._service_phase(session, server.id)
                outcome.sample = await self._metrics_phase(session, server.id)
        except Exception as exc:
            outcome.status = "error"
            outcome.error = str(exc) or exc.__class__.__name__
            logger.warning("Discovery failed for server %s: %s", server.hostname, outcome.error)
        else:
            logger.info("Successfully processed server %s", server.hostname)

        audit = PassAudit(
            start_time=started,
            end_time=datetime.now(UTC),
            message="Discovery completed successfully" if outcome.status == "online" else None,
            **hardware,
        )
        await self._status.record_status(server.id, outcome.status, outcome.error, audit=audit)
        return outcome

    async def _service_phase(self, session: AsyncSession, server_id: int) -> int:
        """Best-effort: a failed read is logged and treated as no services."""
        try:
            services = await ServiceReconciler(session).load_recent_services(
                server_id, limit=self.service_limit
            )
        except StoreError as exc:
            logger.warning("Error getting services for server %s: %s", server_id, exc)
            await session.rollback()
            return 0
        return len(services)

    async def _metrics_phase(self, session: AsyncSession, server_id: int) -> SimulatedSample:
        repo = MetricRepository(session)
        try:
            latest = await repo.get_latest(server_id)
            last = (
                SimulatedSample(latest.cpu_usage, latest.memory_usage, latest.disk_usage)
                if latest is not None
                else None
            )
            sample = simulate_sample(last, self.profile, self._rng)
            await repo.add_sample(server_id, **asdict(sample))
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StoreError(f"Failed to update metrics for server {server_id}: {exc}") from exc
        return sample
