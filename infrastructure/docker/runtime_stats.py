import json
import logging
from typing import Dict, Optional

from domain.entities.container import ContainerMetrics
from domain.errors import ExecutionError
from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from infrastructure.docker.parsers import parse_percent, parse_usage_pair
from infrastructure.monitoring.rate_tracker import RateTracker
from shared.constants import CMD_DOCKER_STATS

logger = logging.getLogger(__name__)


class DockerStatsCollector:
    """
    Per-container CPU, memory and network figures from ``docker stats``.

    Network rates are derived from the cumulative NetIO counters through a
    tracker owned by this collector; series of containers that disappear
    between calls are dropped.
    """

    def __init__(
        self,
        executor: ICommandExecutor,
        tracker: Optional[RateTracker] = None,
        clock: Optional[Clock] = None,
    ):
        self.executor = executor
        self.tracker = tracker or RateTracker()
        self.clock = clock or Clock()

    async def collect(self) -> Dict[str, ContainerMetrics]:
        """Metrics keyed by container id and by name; empty on failure"""
        try:
            raw = await self.executor.execute(CMD_DOCKER_STATS)
        except ExecutionError as e:
            logger.warning("docker stats failed: %s", e)
            return {}

        now = self.clock.now()
        results: Dict[str, ContainerMetrics] = {}
        seen_series = []

        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping unparsable docker stats line: %s", line[:120])
                continue
            if not isinstance(entry, dict):
                continue

            key = entry.get("ID") or entry.get("Container") or entry.get("Name")
            if not key:
                continue

            mem_used, mem_limit = parse_usage_pair(entry.get("MemUsage"))
            net_rx, net_tx = parse_usage_pair(entry.get("NetIO"))

            rx_mbps = tx_mbps = None
            if net_rx is not None:
                seen_series.append(f"{key}:rx")
                rx_mbps = (await self.tracker.sample(f"{key}:rx", int(net_rx), now)).to_mbps()
            if net_tx is not None:
                seen_series.append(f"{key}:tx")
                tx_mbps = (await self.tracker.sample(f"{key}:tx", int(net_tx), now)).to_mbps()

            metrics = ContainerMetrics(
                cpu_percent=parse_percent(entry.get("CPUPerc")),
                mem_percent=parse_percent(entry.get("MemPerc")),
                mem_used_bytes=mem_used,
                mem_limit_bytes=mem_limit,
                net_rx_bytes=net_rx,
                net_tx_bytes=net_tx,
                net_rx_mbps=rx_mbps,
                net_tx_mbps=tx_mbps,
            )
            results[key] = metrics
            name = entry.get("Name")
            if name:
                results[name] = metrics

        await self.tracker.retain(seen_series)
        return results
