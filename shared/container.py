"""
Dependency Injection Container

Centralizes all dependency creation and wiring.
High-level services depend on the executor and clock abstractions; the
container decides which concrete transport (local shell or SSH) backs them.

Usage:
    container = Container(Settings.from_env())
    await container.start()
    snapshot = await container.pull_service().get_snapshot()
    await container.close()
"""

import logging
from typing import Optional

from shared.config.settings import Settings

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency Injection Container.

    Each service is created lazily and cached (singleton pattern), so the
    collectors, inventories and caches have exactly one owner per process.
    Tests override entries by pre-populating ``_cache``.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self._cache = {}
        self._started = False

    # === Infrastructure Layer ===

    def executor(self):
        """Get or create the command executor for the configured transport"""
        if "executor" not in self._cache:
            timeout = self.settings.collector.command_timeout
            if self.settings.collector.transport == "ssh":
                from infrastructure.ssh.ssh_executor import SSHCommandExecutor
                self._cache["executor"] = SSHCommandExecutor(self.settings.ssh, default_timeout=timeout)
            else:
                from infrastructure.local.local_executor import LocalCommandExecutor
                self._cache["executor"] = LocalCommandExecutor(default_timeout=timeout)
        return self._cache["executor"]

    def clock(self):
        """Get or create Clock"""
        if "clock" not in self._cache:
            from domain.services.clock import Clock
            self._cache["clock"] = Clock()
        return self._cache["clock"]

    def network_rate_tracker(self):
        """Get or create the RateTracker for host interface counters"""
        if "network_rate_tracker" not in self._cache:
            from infrastructure.monitoring.rate_tracker import RateTracker
            self._cache["network_rate_tracker"] = RateTracker()
        return self._cache["network_rate_tracker"]

    def host_collector(self):
        """Get or create HostStatsCollector"""
        if "host_collector" not in self._cache:
            from infrastructure.monitoring.host_stats import HostStatsCollector
            cfg = self.settings.collector
            self._cache["host_collector"] = HostStatsCollector(
                executor=self.executor(),
                clock=self.clock(),
                array_mount=cfg.array_mount,
                cpu_sample_delay=cfg.cpu_sample_delay,
                fallback_hostname=cfg.fallback_host,
            )
        return self._cache["host_collector"]

    def network_collector(self):
        """Get or create NetworkStatsCollector"""
        if "network_collector" not in self._cache:
            from infrastructure.monitoring.network_stats import NetworkStatsCollector
            self._cache["network_collector"] = NetworkStatsCollector(
                executor=self.executor(),
                tracker=self.network_rate_tracker(),
                interface=self.settings.collector.network_interface,
                clock=self.clock(),
            )
        return self._cache["network_collector"]

    def container_stats(self):
        """Get or create DockerStatsCollector (None unless enabled)"""
        if "container_stats" not in self._cache:
            stats = None
            if self.settings.collector.collect_container_stats:
                from infrastructure.docker.runtime_stats import DockerStatsCollector
                stats = DockerStatsCollector(executor=self.executor(), clock=self.clock())
            self._cache["container_stats"] = stats
        return self._cache["container_stats"]

    def container_inventory(self):
        """Get or create ContainerInventory"""
        if "container_inventory" not in self._cache:
            from infrastructure.docker.container_inventory import ContainerInventory
            self._cache["container_inventory"] = ContainerInventory(
                executor=self.executor(),
                fallback_host=self.settings.collector.fallback_host,
                stats_collector=self.container_stats(),
            )
        return self._cache["container_inventory"]

    def event_listener(self):
        """Get or create DockerEventListener"""
        if "event_listener" not in self._cache:
            from infrastructure.docker.event_listener import DockerEventListener
            self._cache["event_listener"] = DockerEventListener(
                executor=self.executor(),
                inventory=self.container_inventory(),
                clock=self.clock(),
                restart_delay=self.settings.collector.event_restart_delay,
            )
        return self._cache["event_listener"]

    def vm_inventory(self):
        """Get or create VmInventory"""
        if "vm_inventory" not in self._cache:
            from infrastructure.virtualization.vm_inventory import VmInventory
            from shared.constants import CMD_VIRSH_LIST_ALL, CMD_VIRSH_LIST_RUNNING
            self._cache["vm_inventory"] = VmInventory(
                executor=self.executor(),
                clock=self.clock(),
                stale_after=self.settings.collector.vm_cache_seconds,
                command=CMD_VIRSH_LIST_ALL if self.settings.collector.show_stopped else CMD_VIRSH_LIST_RUNNING,
            )
        return self._cache["vm_inventory"]

    # === Application Layer ===

    def snapshot_assembler(self):
        """Get or create SnapshotAssembler"""
        if "snapshot_assembler" not in self._cache:
            from application.services.snapshot_assembler import SnapshotAssembler
            cfg = self.settings.collector
            self._cache["snapshot_assembler"] = SnapshotAssembler(
                host_collector=self.host_collector(),
                network_collector=self.network_collector(),
                container_inventory=self.container_inventory(),
                vm_inventory=self.vm_inventory(),
                clock=self.clock(),
                collector_timeout=cfg.collector_timeout,
                show_containers=cfg.show_containers,
                show_vms=cfg.show_vms,
                show_stopped=cfg.show_stopped,
            )
        return self._cache["snapshot_assembler"]

    def pull_service(self):
        """Get or create PullSnapshotService"""
        if "pull_service" not in self._cache:
            from application.services.snapshot_cache import PullSnapshotService
            self._cache["pull_service"] = PullSnapshotService(
                source=self.snapshot_assembler(),
                clock=self.clock(),
                refresh_interval=self.settings.server.refresh_interval_seconds,
            )
        return self._cache["pull_service"]

    def broadcaster(self):
        """Get or create SnapshotBroadcaster

        Pushes through the pull cache with force=True so a push cycle also
        refreshes what pull consumers see, and the two never assemble at once.
        """
        if "broadcaster" not in self._cache:
            from application.services.snapshot_broadcaster import SnapshotBroadcaster
            self._cache["broadcaster"] = SnapshotBroadcaster(
                source=self.pull_service(),
                clock=self.clock(),
                interval=self.settings.server.push_interval_seconds,
            )
        return self._cache["broadcaster"]

    # === Presentation Layer ===

    def connection_manager(self):
        """Get or create WebSocket ConnectionManager"""
        if "connection_manager" not in self._cache:
            from infrastructure.websocket.connection_manager import ConnectionManager
            self._cache["connection_manager"] = ConnectionManager(self.broadcaster())
        return self._cache["connection_manager"]

    # === Lifecycle ===

    async def start(self) -> None:
        """Start background work: event feed, push ticker, metrics server"""
        if self._started:
            return
        if self.settings.collector.show_containers:
            self.event_listener().start()
        self.broadcaster().start()
        if self.settings.monitoring.enabled:
            from infrastructure.monitoring import prometheus_exporter
            prometheus_exporter.start_metrics_server(self.settings.monitoring.metrics_port)
            prometheus_exporter.set_target_info(self.executor().target)
        self._started = True
        logger.info("Container started (transport=%s, target=%s)",
                    self.settings.collector.transport, self.executor().target)

    async def close(self) -> None:
        """Stop background work"""
        if "connection_manager" in self._cache:
            await self.connection_manager().close_all()
        if "broadcaster" in self._cache:
            await self.broadcaster().stop()
        if "event_listener" in self._cache:
            await self.event_listener().stop()
        self._started = False
        logger.info("Container closed")
