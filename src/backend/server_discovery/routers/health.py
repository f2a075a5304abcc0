"""Liveness and readiness endpoints, mounted without the /api prefix."""

import logging
from importlib import metadata

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from server_discovery.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

DISTRIBUTION = "server-discovery"


def _installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "unknown"


async def _store_failure() -> str | None:
    """Run SELECT 1; return the failure text, or None when the store answers."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Readiness check failed: %s", exc)
        return str(exc)
    return None


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": _installed_version()}


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
    failure = await _store_failure()
    if failure is None:
        return JSONResponse({"status": "ok"})
    return JSONResponse({"status": "unavailable", "detail": failure}, status_code=503)
