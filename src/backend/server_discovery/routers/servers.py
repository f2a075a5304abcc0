"""Server inventory read endpoints and the discovery-details ingestion endpoint.

GET  /api/stats                            -- inventory and discovery counters
GET  /api/servers                          -- paginated list (filtered by region, status, os_type)
GET  /api/servers/{id}                     -- server with details, latest metrics, services, tags
GET  /api/servers/{id}/open-ports          -- ports of the latest discovery that recorded any
GET  /api/servers/{id}/discoveries         -- discovery history, newest first
POST /api/servers/{id}/discovery-details   -- apply a collector document atomically
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from server_discovery.config import settings
from server_discovery.database import get_db
from server_discovery.repositories.discovery_repo import DiscoveryRepository
from server_discovery.repositories.metric_repo import MetricRepository
from server_discovery.repositories.server_repo import ServerRepository
from server_discovery.schemas.discovery import (
    DiscoveryPayload,
    DiscoveryResultResponse,
    OpenPortResponse,
    PayloadOutcome,
)
from server_discovery.schemas.server import (
    MetricSampleResponse,
    PaginationMeta,
    ServerDetailResponse,
    ServerListResponse,
    ServerResponse,
    ServerWithDetailsResponse,
    ServiceResponse,
    StatsResponse,
    TagResponse,
)
from server_discovery.services.service_reconciler import ServiceReconciler

router = APIRouter(prefix="/api", tags=["servers"])

_DEFAULT_PAGE_SIZE = 50
_MAX_PAGE_SIZE = 200


@router.get("/stats", response_model=StatsResponse)
async def get_stats(session: AsyncSession = Depends(get_db)) -> StatsResponse:
    stats = await ServerRepository(session).get_stats()
    return StatsResponse(**stats)


@router.get("/servers", response_model=ServerListResponse)
async def list_servers(
    region: str | None = Query(default=None),
    status: str | None = Query(default=None),
    os_type: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=_DEFAULT_PAGE_SIZE, ge=1, le=_MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_db),
) -> ServerListResponse:
    repo = ServerRepository(session)
    servers, total = await repo.list_servers(
        region=region,
        status=status,
        os_type=os_type,
        page=page,
        page_size=page_size,
    )
    return ServerListResponse(
        data=[ServerResponse.model_validate(s) for s in servers],
        pagination=PaginationMeta(
            page=page,
            page_size=page_size,
            total=total,
            has_next_page=(page * page_size) < total,
        ),
    )


@router.get("/servers/{server_id}", response_model=ServerWithDetailsResponse)
async def get_server(
    server_id: int,
    session: AsyncSession = Depends(get_db),
) -> ServerWithDetailsResponse:
    server = await ServerRepository(session).get_with_details(server_id)
    latest = await MetricRepository(session).get_latest(server_id)
    services = await ServiceReconciler(session).load_recent_services(
        server_id, limit=settings.SERVICE_HISTORY_LIMIT
    )

    base = ServerResponse.model_validate(server)
    return ServerWithDetailsResponse(
        **base.model_dump(),
        details=ServerDetailResponse.model_validate(server.details) if server.details else None,
        metrics=MetricSampleResponse.model_validate(latest) if latest else None,
        services=[ServiceResponse.model_validate(s) for s in services],
        tags=[TagResponse.model_validate(t) for t in server.tags],
    )


@router.get("/servers/{server_id}/open-ports", response_model=list[OpenPortResponse])
async def get_open_ports(
    server_id: int,
    session: AsyncSession = Depends(get_db),
) -> list[OpenPortResponse]:
    await ServerRepository(session).get_by_id(server_id)
    ports = await DiscoveryRepository(session).latest_open_ports(server_id)
    return [OpenPortResponse.model_validate(p) for p in ports]


@router.get("/servers/{server_id}/discoveries", response_model=list[DiscoveryResultResponse])
async def get_discoveries(
    server_id: int,
    limit: int = Query(default=50, ge=1, le=_MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_db),
) -> list[DiscoveryResultResponse]:
    await ServerRepository(session).get_by_id(server_id)
    results = await DiscoveryRepository(session).list_for_server(server_id, limit=limit)
    return [DiscoveryResultResponse.model_validate(r) for r in results]


@router.post("/servers/{server_id}/discovery-details", response_model=PayloadOutcome)
async def post_discovery_details(
    server_id: int,
    document: Any = Body(...),
    session: AsyncSession = Depends(get_db),
) -> PayloadOutcome:
    payload = DiscoveryPayload.parse(document)
    return await ServiceReconciler(session).apply_payload(server_id, payload)
