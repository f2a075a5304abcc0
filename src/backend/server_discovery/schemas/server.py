"""Pydantic schemas for the server read API."""

from datetime import datetime

from pydantic import BaseModel


class TagResponse(BaseModel):
    tag_name: str
    tag_value: str | None

    model_config = {"from_attributes": True}


class ServerResponse(BaseModel):
    id: int
    hostname: str
    ip: str
    os_type: str | None
    region: str | None
    status: str
    last_checked: datetime | None
    last_error: str | None

    model_config = {"from_attributes": True}


class ServerDetailResponse(BaseModel):
    cpu_model: str
    cpu_cores: int
    memory_total: float
    disk_total: float
    os_version: str

    model_config = {"from_attributes": True}


class MetricSampleResponse(BaseModel):
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    recorded_at: datetime

    model_config = {"from_attributes": True}


class ServiceResponse(BaseModel):
    service_name: str
    service_status: str
    last_checked: datetime

    model_config = {"from_attributes": True}


class ServerWithDetailsResponse(ServerResponse):
    details: ServerDetailResponse | None = None
    metrics: MetricSampleResponse | None = None
    services: list[ServiceResponse] = []
    tags: list[TagResponse] = []


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    has_next_page: bool


class ServerListResponse(BaseModel):
    data: list[ServerResponse]
    pagination: PaginationMeta


class StatsResponse(BaseModel):
    server_count: int
    discovery_count: int
    success_rate: float
    regions: dict[str, int]
    statuses: dict[str, int]
