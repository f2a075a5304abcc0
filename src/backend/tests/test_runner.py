"""Tests for run_discovery, the entry point shared by the scheduler, API and CLI."""

import random

import pytest

from server_discovery.discovery.runner import run_discovery
from server_discovery.errors import ValidationError
from server_discovery.models.server import Server


class TestRunDiscovery:
    async def test_runs_each_profile_in_order(self, session_factory, add_server):
        await add_server("win-01", os_type="Windows Server 2019")
        await add_server("lin-01", os_type="Ubuntu 22.04")
        await add_server("lin-02", os_type="Debian 11")

        results = await run_discovery(
            ["windows", "linux"], session_factory=session_factory, rng=random.Random(1)
        )

        assert list(results) == ["windows", "linux"]
        assert results["windows"] == {"processed": 1, "online": 1, "error": 0}
        assert results["linux"] == {"processed": 2, "online": 2, "error": 0}

    async def test_every_server_ends_online(self, session_factory, add_server):
        ids = []
        for i, os_type in enumerate(["Windows Server 2016", "CentOS 7", None]):
            ids.append(await add_server(f"srv-{i}", os_type=os_type))

        await run_discovery(session_factory=session_factory, rng=random.Random(1))

        async with session_factory() as session:
            statuses = [(await session.get(Server, server_id)).status for server_id in ids]
        assert statuses == ["online", "online", "online"]

    async def test_unknown_profile_is_rejected_before_any_work(self, session_factory):
        with pytest.raises(ValidationError):
            await run_discovery(["windows", "beos"], session_factory=session_factory)
