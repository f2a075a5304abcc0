"""Tests for the server read API, discovery-details ingestion and the manual discovery trigger.

The get_db dependency is overridden with sessions from the in-memory SQLite
fixture; the discovery trigger is tested with run_discovery patched out.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from server_discovery.database import get_db
from server_discovery.main import app
from server_discovery.models.server import ServerTag
from server_discovery.repositories.metric_repo import MetricRepository
from server_discovery.repositories.service_repo import ServiceRepository


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# GET /api/servers
# ---------------------------------------------------------------------------


class TestListServers:
    async def test_lists_servers_by_hostname(self, client, add_server):
        await add_server("win-b", region="eu-west")
        await add_server("win-a", region="us-east")

        response = await client.get("/api/servers")

        assert response.status_code == 200
        body = response.json()
        assert [s["hostname"] for s in body["data"]] == ["win-a", "win-b"]
        assert body["pagination"] == {
            "page": 1,
            "page_size": 50,
            "total": 2,
            "has_next_page": False,
        }

    async def test_filters_by_region(self, client, add_server):
        await add_server("win-a", region="eu-west")
        await add_server("win-b", region="us-east")

        response = await client.get("/api/servers", params={"region": "us-east"})

        assert [s["hostname"] for s in response.json()["data"]] == ["win-b"]

    async def test_pagination(self, client, add_server):
        for i in range(3):
            await add_server(f"srv-{i}")

        response = await client.get("/api/servers", params={"page": 2, "page_size": 2})

        body = response.json()
        assert [s["hostname"] for s in body["data"]] == ["srv-2"]
        assert body["pagination"]["has_next_page"] is False


# ---------------------------------------------------------------------------
# GET /api/servers/{id}
# ---------------------------------------------------------------------------


class TestGetServer:
    async def test_returns_combined_view(self, client, session_factory, add_server):
        server_id = await add_server("win-01")
        base = datetime(2026, 3, 1, tzinfo=UTC)
        async with session_factory() as session:
            metrics = MetricRepository(session)
            await metrics.add_sample(server_id, 10.0, 20.0, 30.0, recorded_at=base)
            await metrics.add_sample(server_id, 11.0, 21.0, 31.0, recorded_at=base + timedelta(1))
            await ServiceRepository(session).add_service(server_id, "W3SVC", "running")
            session.add(ServerTag(server_id=server_id, tag_name="env", tag_value="prod"))
            await session.commit()

        response = await client.get(f"/api/servers/{server_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["hostname"] == "win-01"
        assert body["details"] is None
        assert body["metrics"]["cpu_usage"] == 11.0
        assert [s["service_name"] for s in body["services"]] == ["W3SVC"]
        assert body["tags"] == [{"tag_name": "env", "tag_value": "prod"}]

    async def test_unknown_server_is_404(self, client):
        response = await client.get("/api/servers/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# POST /api/servers/{id}/discovery-details
# ---------------------------------------------------------------------------


class TestDiscoveryDetails:
    async def test_ingests_document(self, client, add_server):
        server_id = await add_server("lin-01", os_type="Ubuntu 22.04")
        document = {
            "cpu": {"usage": 12.5},
            "memory": {"total": 32, "used": 8},
            "services": [{"name": "sshd", "status": "running"}],
            "ports": [{"local_port": 22, "state": "LISTEN"}],
        }

        response = await client.post(f"/api/servers/{server_id}/discovery-details", json=document)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "online"
        assert body["metrics_recorded"] is True
        assert body["services_recorded"] == 1
        assert body["ports_recorded"] == 1

        ports = await client.get(f"/api/servers/{server_id}/open-ports")
        assert [p["local_port"] for p in ports.json()] == [22]

        history = await client.get(f"/api/servers/{server_id}/discoveries")
        assert len(history.json()) == 1
        assert history.json()[0]["success"] is True

        server = await client.get(f"/api/servers/{server_id}")
        assert server.json()["status"] == "online"
        assert server.json()["metrics"]["memory_usage"] == 25.0

    async def test_wrong_typed_fields_are_applied_as_zero(self, client, add_server):
        server_id = await add_server("lin-02", os_type="Ubuntu 22.04")
        document = {
            "cpu": {"usage": "busy"},
            "memory": {"total": "lots", "used": 5},
            "services": [{"name": "sshd", "status": "running"}, {"status": "stopped"}],
        }

        response = await client.post(f"/api/servers/{server_id}/discovery-details", json=document)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "online"
        assert body["metrics_recorded"] is True
        assert body["services_recorded"] == 1

        server = await client.get(f"/api/servers/{server_id}")
        assert server.json()["metrics"]["cpu_usage"] == 0.0
        assert server.json()["metrics"]["memory_usage"] == 0.0

    async def test_non_object_document_is_422(self, client, add_server):
        server_id = await add_server("lin-03", os_type="Ubuntu 22.04")

        response = await client.post(
            f"/api/servers/{server_id}/discovery-details", json=["not", "an", "object"]
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "MALFORMED_PAYLOAD"
        assert body["error"]["request_id"] == response.headers["x-request-id"]

        history = await client.get(f"/api/servers/{server_id}/discoveries")
        assert history.json() == []

    async def test_unknown_server_is_404(self, client):
        response = await client.post("/api/servers/999/discovery-details", json={})

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# GET /api/stats
# ---------------------------------------------------------------------------


class TestStats:
    async def test_counts_servers_and_discoveries(self, client, add_server):
        server_id = await add_server("win-01", region="eu-west")
        await add_server("win-02", region=None)
        await client.post(f"/api/servers/{server_id}/discovery-details", json={})

        response = await client.get("/api/stats")

        body = response.json()
        assert body["server_count"] == 2
        assert body["discovery_count"] == 1
        assert body["success_rate"] == 100.0
        assert body["regions"] == {"eu-west": 1, "unknown": 1}
        assert body["statuses"] == {"online": 1, "offline": 1}


# ---------------------------------------------------------------------------
# POST /api/discovery/run
# ---------------------------------------------------------------------------


class TestDiscoveryTrigger:
    async def test_runs_all_profiles(self, client):
        results = {
            "windows": {"processed": 2, "online": 2, "error": 0},
            "linux": {"processed": 1, "online": 0, "error": 1},
        }
        with patch(
            "server_discovery.routers.discovery.run_discovery", AsyncMock(return_value=results)
        ) as mock_run:
            response = await client.post("/api/discovery/run")

        assert response.status_code == 200
        assert response.json() == {"profiles": results}
        mock_run.assert_awaited_once_with(None)

    async def test_runs_single_profile(self, client):
        with patch(
            "server_discovery.routers.discovery.run_discovery",
            AsyncMock(return_value={"linux": {"processed": 0, "online": 0, "error": 0}}),
        ) as mock_run:
            response = await client.post("/api/discovery/run", params={"profile": "linux"})

        assert response.status_code == 200
        mock_run.assert_awaited_once_with(["linux"])

    async def test_unknown_profile_is_422(self, client):
        response = await client.post("/api/discovery/run", params={"profile": "solaris"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
