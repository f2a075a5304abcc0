"""Status recorder: terminal status of a discovery pass.

Runs in its own session so the status is written even when the pass's own
transaction was rolled back. It never raises; a failure is logged and
reported through the return value.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.models.server import SERVER_STATUSES
from server_discovery.repositories.discovery_repo import DiscoveryRepository
from server_discovery.repositories.server_repo import ServerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassAudit:
    """What a discovery pass saw, stored as a discovery_results row."""

    start_time: datetime
    end_time: datetime
    message: str | None = None
    os_version: str | None = None
    cpu_model: str | None = None
    cpu_count: int | None = None
    memory_total_gb: float | None = None
    disk_total_gb: float | None = None


class StatusRecorder:
    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record_status(
        self,
        server_id: int,
        status: str,
        error_message: str = "",
        audit: PassAudit | None = None,
    ) -> bool:
        """Write status, last_checked and last_error for a server.

        Returns True when the status row was updated. The audit row, if any,
        is written afterwards in a separate session and does not affect the
        return value.
        """
        if status not in SERVER_STATUSES:
            logger.error("Refusing to record unknown status %r for server %s", status, server_id)
            return False

        recorded = False
        try:
            async with self._session_factory() as session:
                updated = await ServerRepository(session).set_status(
                    server_id, status, error_message or None
                )
                await session.commit()
            recorded = updated > 0
            if not recorded:
                logger.warning("Status %r not recorded: server %s does not exist", status, server_id)
        except Exception as exc:
            logger.warning("Error updating status of server %s: %s", server_id, exc)

        if audit is not None:
            await self._record_audit(server_id, status, error_message, audit)
        return recorded

    async def _record_audit(
        self, server_id: int, status: str, error_message: str, audit: PassAudit
    ) -> None:
        success = status == "online"
        try:
            async with self._session_factory() as session:
                await DiscoveryRepository(session).create_result(
                    server_id,
                    success=success,
                    status="completed" if success else "failed",
                    message=audit.message,
                    error=error_message or None,
                    start_time=audit.start_time,
                    end_time=audit.end_time,
                    os_version=audit.os_version,
                    cpu_model=audit.cpu_model,
                    cpu_count=audit.cpu_count,
                    memory_total_gb=audit.memory_total_gb,
                    disk_total_gb=audit.disk_total_gb,
                )
                await session.commit()
        except Exception as exc:
            logger.warning("Error recording discovery result for server %s: %s", server_id, exc)
