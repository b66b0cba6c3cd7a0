"""Unit tests for ContainerInventory."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from conftest import FakeExecutor
from domain.entities.container import ContainerMetrics
from domain.errors import ExecutionError
from infrastructure.docker.container_inventory import ContainerInventory
from shared.constants import CMD_DOCKER_INSPECT, CMD_DOCKER_PS_ALL, CMD_DOCKER_PS_ONE

PLEX_ID = "a" * 64
NGINX_ID = "b" * 64


def ps_row(container_id: str, name: str, status: str = "Up 1 hour", ports: str = "") -> dict:
    return {"ID": container_id, "Names": name, "Image": f"{name}:latest", "Status": status, "Ports": ports, "Labels": ""}


def inspect_entry(container_id: str, ip: str) -> dict:
    return {"Id": container_id, "NetworkSettings": {"IPAddress": ip}}


def lines(*rows: dict) -> str:
    return "\n".join(json.dumps(r) for r in rows)


@pytest.fixture
def docker_host() -> FakeExecutor:
    executor = FakeExecutor()
    executor.on(CMD_DOCKER_PS_ALL, lines(
        ps_row(PLEX_ID, "plex", ports="0.0.0.0:32400->32400/tcp"),
        ps_row(NGINX_ID, "nginx", status="Exited (0) 1 day ago"),
    ))
    executor.on(
        CMD_DOCKER_INSPECT.format(ids=f"{PLEX_ID} {NGINX_ID}"),
        json.dumps([inspect_entry(PLEX_ID, "172.17.0.2"), inspect_entry(NGINX_ID, "")]),
    )
    return executor


class TestFullRefresh:
    """Tests for the lazy full refresh."""

    @pytest.mark.asyncio
    async def test_first_get_refreshes(self, docker_host):
        inventory = ContainerInventory(docker_host, fallback_host="tower")
        assert not inventory.initialized

        containers = await inventory.get()

        assert inventory.initialized
        assert [c.name for c in containers] == ["plex", "nginx"]
        assert containers[0].container_ip == "172.17.0.2"
        assert containers[0].url == "http://tower:32400"
        assert containers[1].running is False

    @pytest.mark.asyncio
    async def test_second_get_uses_cache(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()
        await inventory.get()
        assert docker_host.count(CMD_DOCKER_PS_ALL) == 1

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, docker_host):
        inventory = ContainerInventory(docker_host)
        first = await inventory.get()
        first.clear()
        assert len(await inventory.get()) == 2

    @pytest.mark.asyncio
    async def test_listing_failure_still_initializes_empty(self, executor):
        executor.on(CMD_DOCKER_PS_ALL, ExecutionError(CMD_DOCKER_PS_ALL, 1, "Cannot connect to the Docker daemon"))
        inventory = ContainerInventory(executor)

        assert await inventory.get() == []
        assert inventory.initialized
        await inventory.get()
        assert executor.count(CMD_DOCKER_PS_ALL) == 1

    @pytest.mark.asyncio
    async def test_inspect_failure_keeps_containers(self, executor):
        executor.on(CMD_DOCKER_PS_ALL, lines(ps_row(PLEX_ID, "plex")))
        inventory = ContainerInventory(executor)

        [plex] = await inventory.get()

        assert plex.name == "plex"
        assert plex.container_ip is None

    @pytest.mark.asyncio
    async def test_bad_lines_skipped(self, executor):
        executor.on(CMD_DOCKER_PS_ALL, "not json\n" + lines(ps_row(PLEX_ID, "plex")) + "\n[1,2]\n")
        inventory = ContainerInventory(executor)
        assert [c.name for c in await inventory.get()] == ["plex"]


class TestIncrementalUpdates:
    """Tests for refresh_one() and remove()."""

    @pytest.mark.asyncio
    async def test_refresh_one_replaces_in_place(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()

        docker_host.on(CMD_DOCKER_PS_ONE.format(id=PLEX_ID), lines(ps_row(PLEX_ID, "plex", status="Exited (137)")))
        docker_host.on(CMD_DOCKER_INSPECT.format(ids=PLEX_ID), json.dumps([inspect_entry(PLEX_ID, "")]))
        await inventory.refresh_one(PLEX_ID)

        containers = await inventory.get()
        assert [c.name for c in containers] == ["plex", "nginx"]
        assert containers[0].running is False

    @pytest.mark.asyncio
    async def test_refresh_one_is_idempotent(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()
        new_id = "c" * 64
        docker_host.on(CMD_DOCKER_PS_ONE.format(id=new_id), lines(ps_row(new_id, "sonarr")))

        await inventory.refresh_one(new_id)
        once = await inventory.get()
        await inventory.refresh_one(new_id)
        twice = await inventory.get()

        assert once == twice
        assert [c.name for c in twice] == ["plex", "nginx", "sonarr"]

    @pytest.mark.asyncio
    async def test_refresh_one_removes_vanished_container(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()
        docker_host.on(CMD_DOCKER_PS_ONE.format(id=NGINX_ID), "")

        await inventory.refresh_one(NGINX_ID)

        assert [c.name for c in await inventory.get()] == ["plex"]

    @pytest.mark.asyncio
    async def test_refresh_one_failure_leaves_inventory(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()
        await inventory.refresh_one("d" * 64)  # ps --filter not stubbed: fails
        assert len(await inventory.get()) == 2

    @pytest.mark.asyncio
    async def test_remove_by_short_id(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()

        await inventory.remove(PLEX_ID[:12])

        assert [c.name for c in await inventory.get()] == ["nginx"]

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(self, docker_host):
        inventory = ContainerInventory(docker_host)
        await inventory.get()
        await inventory.remove("zzz")
        assert len(await inventory.get()) == 2


class TestMetricsAttachment:
    """Tests for runtime stats enrichment."""

    @pytest.mark.asyncio
    async def test_metrics_attached_without_mutating_cache(self, docker_host):
        stats = AsyncMock()
        stats.collect.return_value = {PLEX_ID[:12]: ContainerMetrics(cpu_percent=4.0)}
        inventory = ContainerInventory(docker_host, stats_collector=stats)

        containers = await inventory.get()

        assert containers[0].metrics.cpu_percent == 4.0
        assert containers[1].metrics is None

        stats.collect.return_value = {}
        assert (await inventory.get())[0].metrics is None


class GatedExecutor(FakeExecutor):
    """Blocks one command until ``gate`` is set."""

    def __init__(self, gated_command: str):
        super().__init__()
        self.gated_command = gated_command
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def execute(self, command, timeout=None):
        if command == self.gated_command:
            self.waiting.set()
            await self.gate.wait()
        return await super().execute(command, timeout)


class TestConcurrentUpdates:
    """Full refreshes and per-id updates never interleave."""

    @pytest.mark.asyncio
    async def test_event_during_full_refresh_is_not_lost(self):
        executor = GatedExecutor(CMD_DOCKER_PS_ALL)
        executor.on(CMD_DOCKER_PS_ALL, lines(ps_row(PLEX_ID, "plex", status="Up 1 hour")))
        executor.on(CMD_DOCKER_INSPECT.format(ids=PLEX_ID), json.dumps([inspect_entry(PLEX_ID, "")]))
        executor.on(CMD_DOCKER_PS_ONE.format(id=PLEX_ID), lines(ps_row(PLEX_ID, "plex", status="Exited (0)")))
        inventory = ContainerInventory(executor)

        full = asyncio.create_task(inventory.get())
        await executor.waiting.wait()
        event = asyncio.create_task(inventory.refresh_one(PLEX_ID))
        await asyncio.sleep(0)
        executor.gate.set()
        await asyncio.gather(full, event)

        [plex] = await inventory.get()
        assert plex.status == "Exited (0)"
        assert plex.running is False

    @pytest.mark.asyncio
    async def test_concurrent_first_gets_share_one_listing(self, docker_host):
        inventory = ContainerInventory(docker_host)

        results = await asyncio.gather(*(inventory.get() for _ in range(3)))

        assert docker_host.count(CMD_DOCKER_PS_ALL) == 1
        assert all(len(r) == 2 for r in results)
