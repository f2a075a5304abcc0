"""Tests for the service/port reconciler: recent-service reads and atomic payload ingestion."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from server_discovery.errors import NotFoundError, StoreError, TransactionError
from server_discovery.models.discovery import DiscoveryResult, OpenPort
from server_discovery.models.metrics import MetricSample
from server_discovery.models.server import Server
from server_discovery.repositories.discovery_repo import DiscoveryRepository
from server_discovery.repositories.metric_repo import MetricRepository
from server_discovery.repositories.service_repo import ServiceRepository
from server_discovery.schemas.discovery import DiscoveryPayload
from server_discovery.services.service_reconciler import ServiceReconciler

FULL_DOCUMENT = {
    "cpu": {"usage": 42.5},
    "memory": {"total": 16.0, "used": 4.0},
    "disk": {"drives": [{"total": 200.0, "used": 50.0}, {"total": 100.0, "used": 100.0}]},
    "services": [
        {"name": "sshd", "status": "running"},
        {"name": "nginx", "status": "stopped"},
    ],
    "ports": [
        {"local_port": 22, "local_ip": "0.0.0.0", "state": "LISTEN", "process_name": "sshd"},
        {"local_port": 443, "state": "LISTEN"},
    ],
    "os": {"name": "Ubuntu", "version": "22.04"},
}


async def _count(session_factory, model, **filters) -> int:
    async with session_factory() as session:
        query = select(func.count(model.id))
        for column, value in filters.items():
            query = query.where(getattr(model, column) == value)
        return (await session.execute(query)).scalar_one()


# ---------------------------------------------------------------------------
# load_recent_services
# ---------------------------------------------------------------------------


class TestLoadRecentServices:
    async def test_newest_first_and_limited(self, session_factory, add_server):
        server_id = await add_server("lin-01", os_type="Ubuntu 22.04")
        base = datetime(2026, 1, 1, tzinfo=UTC)
        async with session_factory() as session:
            repo = ServiceRepository(session)
            for i in range(12):
                await repo.add_service(
                    server_id, f"svc-{i:02d}", "running", last_checked=base + timedelta(minutes=i)
                )
            await session.commit()

        async with session_factory() as session:
            services = await ServiceReconciler(session).load_recent_services(server_id)

        assert len(services) == 10
        assert [s.service_name for s in services[:3]] == ["svc-11", "svc-10", "svc-09"]

    async def test_equal_timestamps_prefer_latest_insert(self, session_factory, add_server):
        server_id = await add_server("lin-02", os_type="Ubuntu 22.04")
        checked = datetime(2026, 1, 1, tzinfo=UTC)
        async with session_factory() as session:
            repo = ServiceRepository(session)
            await repo.add_service(server_id, "first", "running", last_checked=checked)
            await repo.add_service(server_id, "second", "running", last_checked=checked)
            await session.commit()

        async with session_factory() as session:
            services = await ServiceReconciler(session).load_recent_services(server_id, limit=1)

        assert [s.service_name for s in services] == ["second"]

    async def test_no_services_is_empty(self, session_factory, add_server):
        server_id = await add_server("lin-03", os_type="Ubuntu 22.04")
        async with session_factory() as session:
            assert await ServiceReconciler(session).load_recent_services(server_id) == []

    async def test_read_failure_raises_store_error(self, session_factory):
        async with session_factory() as session:
            with patch.object(
                ServiceRepository,
                "list_recent",
                AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone"))),
            ):
                with pytest.raises(StoreError):
                    await ServiceReconciler(session).load_recent_services(1)


# ---------------------------------------------------------------------------
# apply_payload
# ---------------------------------------------------------------------------


class TestApplyPayload:
    async def test_full_document_is_persisted(self, session_factory, add_server):
        server_id = await add_server("lin-10", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(FULL_DOCUMENT)

        async with session_factory() as session:
            outcome = await ServiceReconciler(session).apply_payload(server_id, payload)

        assert outcome.status == "online"
        assert outcome.metrics_recorded is True
        assert outcome.services_recorded == 2
        assert outcome.ports_recorded == 2

        async with session_factory() as session:
            sample = await MetricRepository(session).get_latest(server_id)
            server = await session.get(Server, server_id)
            ports = await DiscoveryRepository(session).latest_open_ports(server_id)
            result = await session.get(DiscoveryResult, outcome.discovery_id)

        assert sample.cpu_usage == 42.5
        assert sample.memory_usage == 25.0
        assert sample.disk_usage == 25.0
        assert server.status == "online"
        assert server.last_error is None
        assert server.last_checked is not None
        assert [p.local_port for p in ports] == [22, 443]
        assert result.success is True
        assert result.os_name == "Ubuntu"
        assert result.os_version == "22.04"

    async def test_zero_totals_yield_zero_percent(self, session_factory, add_server):
        server_id = await add_server("lin-11", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(
            {"cpu": {"usage": 10.0}, "memory": {"total": 0, "used": 5}, "disk": {"drives": []}}
        )

        async with session_factory() as session:
            await ServiceReconciler(session).apply_payload(server_id, payload)

        async with session_factory() as session:
            sample = await MetricRepository(session).get_latest(server_id)

        assert sample.memory_usage == 0.0
        assert sample.disk_usage == 0.0

    async def test_wrong_typed_memory_total_writes_zero_usage(self, session_factory, add_server):
        server_id = await add_server("lin-14", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(
            {"cpu": {"usage": 10.0}, "memory": {"total": "lots", "used": 5}}
        )

        async with session_factory() as session:
            outcome = await ServiceReconciler(session).apply_payload(server_id, payload)

        assert outcome.metrics_recorded is True
        assert await _count(session_factory, MetricSample, server_id=server_id) == 1
        async with session_factory() as session:
            sample = await MetricRepository(session).get_latest(server_id)
        assert sample.cpu_usage == 10.0
        assert sample.memory_usage == 0.0
        assert sample.disk_usage == 0.0

    async def test_non_object_cpu_section_skips_metrics_only(self, session_factory, add_server):
        server_id = await add_server("lin-15", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(
            {"cpu": "n/a", "services": [{"name": "cron", "status": "running"}]}
        )

        async with session_factory() as session:
            outcome = await ServiceReconciler(session).apply_payload(server_id, payload)

        assert outcome.status == "online"
        assert outcome.metrics_recorded is False
        assert outcome.services_recorded == 1
        assert await _count(session_factory, MetricSample, server_id=server_id) == 0

    async def test_without_cpu_section_no_metrics_are_written(self, session_factory, add_server):
        server_id = await add_server("lin-12", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse({"services": [{"name": "cron", "status": "running"}]})

        async with session_factory() as session:
            outcome = await ServiceReconciler(session).apply_payload(server_id, payload)

        assert outcome.metrics_recorded is False
        assert outcome.services_recorded == 1
        assert await _count(session_factory, MetricSample, server_id=server_id) == 0

    async def test_failed_service_write_rolls_back_everything(self, session_factory, add_server):
        server_id = await add_server("lin-13", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(FULL_DOCUMENT)

        async with session_factory() as session:
            with patch.object(
                ServiceRepository,
                "add_service",
                AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full"))),
            ):
                with pytest.raises(TransactionError) as exc_info:
                    await ServiceReconciler(session).apply_payload(server_id, payload)

        assert exc_info.value.step == "services"
        assert exc_info.value.code == "TRANSACTION_FAILED"
        assert await _count(session_factory, MetricSample, server_id=server_id) == 0
        assert await _count(session_factory, DiscoveryResult, server_id=server_id) == 0
        assert await _count(session_factory, OpenPort) == 0
        async with session_factory() as session:
            server = await session.get(Server, server_id)
        assert server.status == "offline"

    async def test_failed_audit_write_names_the_step(self, session_factory, add_server):
        server_id = await add_server("lin-14", os_type="Ubuntu 22.04")
        payload = DiscoveryPayload.parse(FULL_DOCUMENT)

        async with session_factory() as session:
            with patch.object(
                DiscoveryRepository,
                "create_result",
                AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("locked"))),
            ):
                with pytest.raises(TransactionError) as exc_info:
                    await ServiceReconciler(session).apply_payload(server_id, payload)

        assert exc_info.value.step == "audit"
        assert await _count(session_factory, MetricSample, server_id=server_id) == 0

    async def test_unknown_server_raises_not_found(self, session_factory):
        payload = DiscoveryPayload.parse(FULL_DOCUMENT)
        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await ServiceReconciler(session).apply_payload(999, payload)

        assert await _count(session_factory, MetricSample) == 0
