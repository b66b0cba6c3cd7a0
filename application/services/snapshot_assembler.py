"""
Snapshot Assembler.

Runs every collector concurrently and combines their results into one
Snapshot. A collector that fails or exceeds its time budget only degrades
its own field; assembly itself never fails.

Usage:
    assembler = container.snapshot_assembler()
    snapshot = await assembler.get_snapshot()
    payload = snapshot.to_dict()
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Optional

from domain.entities.snapshot import HostSnapshot, Snapshot
from domain.services.clock import Clock
from domain.services.snapshot_source import ISnapshotSource
from infrastructure.docker.container_inventory import ContainerInventory
from infrastructure.monitoring import prometheus_exporter
from infrastructure.monitoring.host_stats import HostStatsCollector
from infrastructure.monitoring.network_stats import NetworkStatsCollector
from infrastructure.virtualization.vm_inventory import VmInventory
from shared.logging.correlation import correlation_scope

logger = logging.getLogger(__name__)


class SnapshotAssembler(ISnapshotSource):
    """Builds a fresh Snapshot from all collectors on every call."""

    def __init__(
        self,
        host_collector: HostStatsCollector,
        network_collector: NetworkStatsCollector,
        container_inventory: ContainerInventory,
        vm_inventory: VmInventory,
        clock: Optional[Clock] = None,
        collector_timeout: float = 15.0,
        show_containers: bool = True,
        show_vms: bool = True,
        show_stopped: bool = True,
    ):
        self.host_collector = host_collector
        self.network_collector = network_collector
        self.container_inventory = container_inventory
        self.vm_inventory = vm_inventory
        self.clock = clock or Clock()
        self.collector_timeout = collector_timeout
        self.show_containers = show_containers
        self.show_vms = show_vms
        self.show_stopped = show_stopped
        self._last_captured_at: Optional[datetime] = None

    async def get_snapshot(self, force: bool = False) -> Snapshot:
        """Assemble a snapshot. Always collects; ``force`` is accepted for the interface."""
        with correlation_scope("snap-"):
            host, network, array_usage, containers, vms = await asyncio.gather(
                self._bounded("host", self.host_collector.collect(), self._fallback_host()),
                self._bounded("network", self.network_collector.collect(), None),
                self._bounded("array", self.host_collector.collect_array_usage(), None),
                self._collect_containers(),
                self._collect_vms(),
            )

            if not self.show_stopped:
                containers = [c for c in containers if c.running]
                vms = [vm for vm in vms if vm.running]

            snapshot = Snapshot(
                captured_at=self._next_captured_at(),
                host=host,
                network=network,
                array_usage=array_usage,
                containers=containers,
                vms=vms,
            )
            prometheus_exporter.record_snapshot(snapshot)
            logger.debug(
                "Snapshot assembled: cpu=%.1f%% containers=%d vms=%d",
                host.cpu_percent, len(containers), len(vms),
            )
            return snapshot

    async def _collect_containers(self):
        if not self.show_containers:
            return []
        return await self._bounded("containers", self.container_inventory.get(), [])

    async def _collect_vms(self):
        if not self.show_vms:
            return []
        return await self._bounded("vms", self.vm_inventory.get(), [])

    async def _bounded(self, name: str, coro: Awaitable, default):
        try:
            return await asyncio.wait_for(coro, timeout=self.collector_timeout)
        except asyncio.TimeoutError:
            logger.warning("Collector '%s' timed out after %.1fs", name, self.collector_timeout)
        except Exception as e:
            logger.warning("Collector '%s' failed: %s", name, e)
        prometheus_exporter.record_collector_failure(name)
        return default

    def _fallback_host(self) -> HostSnapshot:
        return HostSnapshot(hostname=self.host_collector.fallback_hostname)

    def _next_captured_at(self) -> datetime:
        captured_at = self.clock.wall()
        if self._last_captured_at is not None and captured_at < self._last_captured_at:
            captured_at = self._last_captured_at
        self._last_captured_at = captured_at
        return captured_at
