"""Composition root for discovery runs.

run_discovery() wires settings, the session factory, the random source and
the status recorder into one orchestrator per profile. It backs the
scheduled job, the manual trigger endpoint and the ``server-discovery``
console script.
"""

import asyncio
import logging
import random
from collections.abc import Callable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.config import settings
from server_discovery.database import AsyncSessionLocal, async_engine
from server_discovery.discovery.orchestrator import DiscoveryOrchestrator, ServerLockRegistry
from server_discovery.discovery.profiles import get_profile
from server_discovery.discovery.simulator import default_rng
from server_discovery.services.status_recorder import StatusRecorder

logger = logging.getLogger(__name__)

# Shared by every run in this process so scheduled and manual runs never
# process the same server at the same time.
_server_locks = ServerLockRegistry()


async def run_discovery(
    profile_names: Sequence[str] | None = None,
    *,
    session_factory: Callable[[], AsyncSession] | None = None,
    rng: random.Random | None = None,
    max_concurrency: int | None = None,
) -> dict[str, dict[str, int]]:
    """Run one batch per profile and return the per-profile counts."""
    profiles = [get_profile(name) for name in (profile_names or settings.profile_names)]
    session_factory = session_factory or AsyncSessionLocal
    rng = rng or default_rng(settings.DISCOVERY_RANDOM_SEED)
    recorder = StatusRecorder(session_factory)

    results: dict[str, dict[str, int]] = {}
    for profile in profiles:
        logger.info("Starting %s server discovery", profile.name)
        orchestrator = DiscoveryOrchestrator(
            session_factory,
            profile,
            rng,
            recorder,
            max_concurrency=max_concurrency or settings.DISCOVERY_CONCURRENCY,
            service_limit=settings.SERVICE_HISTORY_LIMIT,
            locks=_server_locks,
        )
        results[profile.name] = await orchestrator.run_batch()
    return results


async def _run_once() -> dict[str, dict[str, int]]:
    try:
        return await run_discovery()
    finally:
        await async_engine.dispose()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    results = asyncio.run(_run_once())
    logger.info("All server discovery completed: %s", results)
