"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, List, Optional, Union

import pytest

# Keep a developer's .env from leaking into settings-driven tests
os.environ.setdefault("TRANSPORT", "local")

from domain.entities.container import Container, PortMapping
from domain.entities.snapshot import ArrayUsage, HostSnapshot, MemoryStats, NetworkSnapshot, Snapshot
from domain.entities.virtual_machine import VirtualMachine
from domain.errors import ExecutionError
from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from domain.services.snapshot_source import ISnapshotSource

Response = Union[str, BaseException]


# ============================================================================
# Fakes
# ============================================================================

class FakeExecutor(ICommandExecutor):
    """
    Executor returning canned output per exact command string.

    A response may be a string, an exception instance (raised), or a list of
    those consumed in order (the last entry repeats). Unknown commands fail
    like a missing binary would.
    """

    def __init__(self, responses: Optional[Dict[str, Union[Response, List[Response]]]] = None):
        self.responses: Dict[str, Union[Response, List[Response]]] = dict(responses or {})
        self.streams: List[Union[List[str], BaseException]] = []
        self.calls: List[str] = []

    @property
    def target(self) -> str:
        return "fake-host"

    def on(self, command: str, *outputs: Response) -> "FakeExecutor":
        self.responses[command] = list(outputs) if len(outputs) > 1 else outputs[0]
        return self

    async def execute(self, command: str, timeout: Optional[float] = None) -> str:
        self.calls.append(command)
        if command not in self.responses:
            raise ExecutionError(command, 127, f"{command.split()[0]}: command not found")
        value = self.responses[command]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, BaseException):
            raise value
        return value

    async def stream(self, command: str) -> AsyncIterator[str]:
        self.calls.append(command)
        if not self.streams:
            raise ExecutionError(command, 1, "stream unavailable")
        lines = self.streams.pop(0)
        if isinstance(lines, BaseException):
            raise lines
        for line in lines:
            yield line
        raise ExecutionError(command, 0, "")

    def count(self, command: str) -> int:
        return self.calls.count(command)


class ManualClock(Clock):
    """Clock that only moves when told to (or when something sleeps)."""

    def __init__(self, start: float = 1000.0, wall_start: Optional[datetime] = None):
        self.t = start
        self.wall_time = wall_start or datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.t

    def wall(self) -> datetime:
        return self.wall_time

    def advance(self, seconds: float) -> None:
        self.t += seconds
        self.wall_time += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


class StaticSource(ISnapshotSource):
    """Snapshot source that counts calls and returns prepared snapshots."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self.snapshot = snapshot or make_snapshot()
        self.calls = 0
        self.forced: List[bool] = []
        self.error: Optional[Exception] = None

    async def get_snapshot(self, force: bool = False) -> Snapshot:
        self.calls += 1
        self.forced.append(force)
        if self.error is not None:
            raise self.error
        return self.snapshot


def make_snapshot(cpu: float = 12.5, **overrides) -> Snapshot:
    fields = dict(
        captured_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
        host=HostSnapshot(
            uptime_seconds=3600,
            cpu_percent=cpu,
            memory=MemoryStats(total_gb=32.0, used_gb=8.0, used_percent=25.0),
            hostname="tower",
        ),
        network=NetworkSnapshot("eth0", 1000, 2000, 1.5, 0.5),
        array_usage=ArrayUsage(total_tb=20.0, used_tb=5.0, used_percent=25.0),
        containers=[
            Container(
                id="a" * 64,
                name="plex",
                image="plexinc/pms-docker",
                status="Up 3 hours",
                ports=[PortMapping("32400->32400/tcp", "0.0.0.0", "32400", "32400", "tcp")],
                url="http://tower:32400",
            ),
            Container(id="b" * 64, name="old", image="busybox", status="Exited (0) 2 days ago"),
        ],
        vms=[VirtualMachine("Windows11", "running"), VirtualMachine("Ubuntu", "shut off")],
    )
    fields.update(overrides)
    return Snapshot(**fields)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def snapshot() -> Snapshot:
    return make_snapshot()


@pytest.fixture
def static_source(snapshot) -> StaticSource:
    return StaticSource(snapshot)
