"""Pydantic schemas for inbound discovery documents and discovery responses.

The inbound document comes from an external collector and is trusted only
loosely. Every section is optional. A section or field with the wrong type
is dropped with a warning, so the affected derived metric reads 0 and the
rest of the document is still applied. Only a document that is not a JSON
object at all is rejected as a malformed payload.
"""

import logging
from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)
from pydantic import ValidationError as PydanticValidationError

from server_discovery.errors import MalformedPayloadError

logger = logging.getLogger(__name__)


def _number_or_zero(
    value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
) -> float:
    try:
        return handler(value)
    except PydanticValidationError:
        logger.warning("Non-numeric %s in discovery payload (%r), using 0", info.field_name, value)
        return 0.0


def _section_or_none(value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo):
    try:
        return handler(value)
    except PydanticValidationError:
        logger.warning(
            "Ignoring malformed %s section in discovery payload: %r", info.field_name, value
        )
        return None


def _list_or_empty(value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo):
    try:
        return handler(value)
    except PydanticValidationError:
        logger.warning("Ignoring malformed %s in discovery payload: %r", info.field_name, value)
        return []


def _valid_entries(value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo):
    """Keep the well-formed entries of a list, dropping the rest."""
    if not isinstance(value, list):
        return _list_or_empty(value, handler, info)
    kept = []
    for entry in value:
        try:
            kept.extend(handler([entry]))
        except PydanticValidationError:
            logger.warning(
                "Dropping malformed %s entry in discovery payload: %r", info.field_name, entry
            )
    return kept


Usage = Annotated[float, WrapValidator(_number_or_zero)]


class CpuSection(BaseModel):
    usage: Usage = 0.0


class CapacitySection(BaseModel):
    total: Usage = 0.0
    used: Usage = 0.0

    def used_percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return (self.used / self.total) * 100


class DiskSection(BaseModel):
    # positional: usage is read from drives[0], so a bad entry voids the list
    drives: Annotated[list[CapacitySection], WrapValidator(_list_or_empty)] = Field(
        default_factory=list
    )


class ObservedService(BaseModel):
    name: str
    status: str


class ObservedPort(BaseModel):
    local_port: int
    local_ip: str | None = None
    remote_port: int | None = None
    remote_ip: str | None = None
    state: str | None = None
    description: str | None = None
    process_id: int | None = None
    process_name: str | None = None


class OsSection(BaseModel):
    name: str | None = None
    version: str | None = None


class DiscoveryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cpu: Annotated[CpuSection | None, WrapValidator(_section_or_none)] = None
    memory: Annotated[CapacitySection | None, WrapValidator(_section_or_none)] = None
    disk: Annotated[DiskSection | None, WrapValidator(_section_or_none)] = None
    services: Annotated[list[ObservedService], WrapValidator(_valid_entries)] = Field(
        default_factory=list
    )
    ports: Annotated[list[ObservedPort], WrapValidator(_valid_entries)] = Field(
        default_factory=list
    )
    os: Annotated[OsSection | None, WrapValidator(_section_or_none)] = None
    last_boot_time: Annotated[datetime | None, WrapValidator(_section_or_none)] = None

    @classmethod
    def parse(cls, document: Any) -> "DiscoveryPayload":
        """Validate a raw collector document; only a non-object raises MalformedPayloadError."""
        try:
            return cls.model_validate(document)
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in exc.errors()
            )
            raise MalformedPayloadError(f"Malformed discovery payload: {problems}") from exc

    def memory_usage(self) -> float:
        if self.memory is None:
            return 0.0
        return self.memory.used_percent()

    def disk_usage(self) -> float:
        if self.disk is None or not self.disk.drives:
            return 0.0
        return self.disk.drives[0].used_percent()

    def unique_services(self) -> list[ObservedService]:
        """Observed services with duplicate names collapsed to the last occurrence."""
        by_name: dict[str, ObservedService] = {}
        for service in self.services:
            by_name.pop(service.name, None)
            by_name[service.name] = service
        return list(by_name.values())


class PayloadOutcome(BaseModel):
    server_id: int
    status: str
    metrics_recorded: bool
    services_recorded: int
    ports_recorded: int
    discovery_id: int | None


class DiscoveryResultResponse(BaseModel):
    id: int
    server_id: int
    success: bool
    status: str | None
    message: str | None
    error: str | None
    start_time: datetime | None
    end_time: datetime | None
    os_name: str | None
    os_version: str | None
    cpu_model: str | None
    cpu_count: int | None
    memory_total_gb: float | None
    disk_total_gb: float | None

    model_config = {"from_attributes": True}


class OpenPortResponse(BaseModel):
    local_port: int
    local_ip: str | None
    remote_port: int | None
    remote_ip: str | None
    state: str | None
    description: str | None
    process_id: int | None
    process_name: str | None

    model_config = {"from_attributes": True}


class DiscoveryRunResult(BaseModel):
    profiles: dict[str, dict[str, int]]
