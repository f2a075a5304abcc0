"""Server discovery FastAPI application factory.

Entry point: uvicorn server_discovery.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from server_discovery.config import settings
from server_discovery.database import async_engine
from server_discovery.discovery.runner import run_discovery
from server_discovery.errors import ServerDiscoveryError
from server_discovery.middleware import RequestIDMiddleware, get_request_id
from server_discovery.routers import discovery, health, servers

logger = logging.getLogger(__name__)


async def _scheduled_discovery() -> None:
    results = await run_discovery()
    logger.info("Scheduled discovery finished: %s", results)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    scheduler = AsyncIOScheduler()
    if settings.DISCOVERY_SCHEDULER_ENABLED:
        scheduler.add_job(
            _scheduled_discovery,
            "interval",
            minutes=settings.DISCOVERY_INTERVAL_MINUTES,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await async_engine.dispose()


app = FastAPI(title="Server Discovery", lifespan=lifespan)

app.add_middleware(RequestIDMiddleware)


@app.exception_handler(ServerDiscoveryError)
async def server_discovery_error_handler(request: Request, exc: ServerDiscoveryError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "request_id": get_request_id(),
            }
        },
    )


app.include_router(health.router)
app.include_router(servers.router)
app.include_router(discovery.router)
