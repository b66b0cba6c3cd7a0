import asyncio
import logging
from typing import Dict, Optional

from domain.entities.snapshot import ArrayUsage, HostSnapshot, MemoryStats
from domain.errors import ExecutionError, ParseError
from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from domain.services.counter_math import (
    bytes_to_tb,
    clamp,
    cpu_busy_percent,
    kb_to_gb,
    parse_cpu_line,
)
from shared.constants import (
    CMD_CPU_STAT,
    CMD_DISK_USAGE,
    CMD_HOSTNAME,
    CMD_MEMINFO,
    CMD_UPTIME,
    CPU_SAMPLE_DELAY_SECONDS,
)

logger = logging.getLogger(__name__)


class HostStatsCollector:
    """Host resource sampling (CPU, memory, uptime, hostname, array capacity)"""

    def __init__(
        self,
        executor: ICommandExecutor,
        clock: Optional[Clock] = None,
        array_mount: str = "/mnt/user",
        cpu_sample_delay: float = CPU_SAMPLE_DELAY_SECONDS,
        fallback_hostname: Optional[str] = None,
    ):
        self.executor = executor
        self.clock = clock or Clock()
        self.array_mount = array_mount
        self.cpu_sample_delay = cpu_sample_delay
        self.fallback_hostname = fallback_hostname or "unknown"

    async def collect(self) -> HostSnapshot:
        """Collect host stats; each failing part degrades to its zero value"""
        cpu_percent, memory, uptime, hostname = await asyncio.gather(
            self._degrade(self.collect_cpu_percent(), 0.0, "cpu"),
            self._degrade(self.collect_memory(), MemoryStats(), "memory"),
            self._degrade(self.collect_uptime(), 0, "uptime"),
            self._degrade(self.collect_hostname(), self.fallback_hostname, "hostname"),
        )
        return HostSnapshot(
            uptime_seconds=uptime,
            cpu_percent=cpu_percent,
            memory=memory,
            hostname=hostname,
        )

    async def collect_cpu_percent(self) -> float:
        """
        CPU busy percentage over a short window.

        /proc/stat only exposes cumulative ticks, so two readings are taken
        ``cpu_sample_delay`` seconds apart and compared.
        """
        first = parse_cpu_line(await self.executor.execute(CMD_CPU_STAT))
        await self.clock.sleep(self.cpu_sample_delay)
        second = parse_cpu_line(await self.executor.execute(CMD_CPU_STAT))
        return cpu_busy_percent(first, second)

    async def collect_memory(self) -> MemoryStats:
        meminfo = parse_meminfo(await self.executor.execute(CMD_MEMINFO))

        total_kb = meminfo.get("MemTotal", 0)
        available_kb = meminfo.get("MemAvailable")
        if available_kb is None:
            available_kb = meminfo.get("MemFree", 0)
        used_kb = max(total_kb - available_kb, 0)
        used_percent = (used_kb / total_kb) * 100 if total_kb else 0.0

        return MemoryStats(
            total_gb=kb_to_gb(total_kb),
            used_gb=kb_to_gb(used_kb),
            used_percent=clamp(used_percent, 0.0, 100.0),
        )

    async def collect_uptime(self) -> int:
        raw = await self.executor.execute(CMD_UPTIME)
        try:
            return int(float(raw.split()[0]))
        except (IndexError, ValueError):
            raise ParseError("/proc/uptime", "expected seconds as first field", raw)

    async def collect_hostname(self) -> str:
        hostname = (await self.executor.execute(CMD_HOSTNAME)).strip()
        return hostname or self.fallback_hostname

    async def collect_array_usage(self) -> ArrayUsage:
        """Capacity of the array mount; any failure yields a zero-valued result"""
        try:
            raw = await self.executor.execute(CMD_DISK_USAGE.format(mount=self.array_mount))
        except ExecutionError as e:
            logger.warning("Array usage fetch failed for %s: %s", self.array_mount, e)
            return ArrayUsage.empty()
        return parse_df_line(raw)

    async def _degrade(self, coro, default, what: str):
        try:
            return await coro
        except (ExecutionError, ParseError) as e:
            logger.warning("Host %s collection failed: %s", what, e)
            return default


def parse_meminfo(text: str) -> Dict[str, int]:
    """Parse ``Key:   1234 kB`` lines into a dict of kilobyte values."""
    parsed: Dict[str, int] = {}
    for line in text.strip().splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        try:
            parsed[key.strip()] = int(value.split()[0])
        except (IndexError, ValueError):
            continue
    return parsed


def parse_df_line(line: str) -> ArrayUsage:
    """
    Parse the data line of ``df -B1``.

    Filesystem  1B-blocks  Used  Available  Use%  Mounted on
    """
    parts = line.strip().split()
    if len(parts) < 5:
        return ArrayUsage.empty()

    total_bytes = _to_number(parts[1])
    used_bytes = _to_number(parts[2])
    fallback_percent = (used_bytes / total_bytes) * 100 if total_bytes else 0.0

    used_percent = fallback_percent
    if parts[4].endswith("%"):
        reported = _to_number(parts[4][:-1], default=None)
        if reported is not None:
            used_percent = reported

    return ArrayUsage(
        total_tb=bytes_to_tb(total_bytes),
        used_tb=bytes_to_tb(used_bytes),
        used_percent=clamp(used_percent, 0.0, 100.0),
    )


def _to_number(raw: str, default: Optional[float] = 0.0) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        return default
