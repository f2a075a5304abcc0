"""Detail reconciler: read-or-seed the hardware profile of a server.

A server that has never been discovered has no server_details row. The first
pass seeds one from the profile's HardwareCatalog, keyed on the server id so
the same server always gets the same synthetic hardware. Later passes only
read it back.
"""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.discovery.profiles import HardwareCatalog
from server_discovery.errors import StoreError
from server_discovery.models.server import ServerDetail
from server_discovery.repositories.detail_repo import DetailRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeededDetails:
    cpu_model: str
    cpu_cores: int
    memory_total: float
    disk_total: float
    os_version: str


def synthesize_details(server_id: int, catalog: HardwareCatalog) -> SeededDetails:
    return SeededDetails(
        cpu_model=catalog.cpu_models[server_id % len(catalog.cpu_models)],
        cpu_cores=catalog.base_cores + server_id % catalog.core_spread,
        memory_total=catalog.base_memory_gb
        + (server_id % catalog.memory_slots) * catalog.memory_step_gb,
        disk_total=catalog.base_disk_gb + (server_id % catalog.disk_slots) * catalog.disk_step_gb,
        os_version=catalog.os_versions[server_id % len(catalog.os_versions)],
    )


class DetailReconciler:
    def __init__(self, session: AsyncSession, catalog: HardwareCatalog) -> None:
        self.repo = DetailRepository(session)
        self.session = session
        self.catalog = catalog

    async def ensure_details(self, server_id: int) -> ServerDetail:
        """Return the server's details row, inserting a seeded one if it has none.

        The seeded insert is committed on its own. Any store failure rolls the
        session back and raises StoreError.
        """
        existing = await self._lookup(server_id)
        if existing is not None:
            return existing

        seeded = synthesize_details(server_id, self.catalog)
        try:
            detail = await self.repo.create(server_id=server_id, **asdict(seeded))
            await self.session.commit()
        except IntegrityError:
            # server_details.server_id is unique: another pass seeded it first
            await self.session.rollback()
            existing = await self._lookup(server_id)
            if existing is None:
                raise StoreError(f"Failed to seed details for server {server_id}") from None
            return existing
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to insert details for server {server_id}: {exc}") from exc

        logger.info(
            "Seeded details for server %s: %s, %d cores, %s",
            server_id,
            seeded.cpu_model,
            seeded.cpu_cores,
            seeded.os_version,
        )
        return detail

    async def _lookup(self, server_id: int) -> ServerDetail | None:
        try:
            return await self.repo.get_for_server(server_id)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to read details for server {server_id}: {exc}") from exc
