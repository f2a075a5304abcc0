"""Manual discovery trigger.

POST /api/discovery/run            -- run every configured profile
POST /api/discovery/run?profile=x  -- run a single profile
"""

from fastapi import APIRouter, Query

from server_discovery.discovery.runner import run_discovery
from server_discovery.schemas.discovery import DiscoveryRunResult

router = APIRouter(prefix="/api", tags=["discovery"])


@router.post("/discovery/run", response_model=DiscoveryRunResult)
async def trigger_discovery(
    profile: str | None = Query(default=None),
) -> DiscoveryRunResult:
    results = await run_discovery([profile] if profile else None)
    return DiscoveryRunResult(profiles=results)
