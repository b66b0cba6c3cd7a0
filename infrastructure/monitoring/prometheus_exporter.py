"""
Prometheus metrics exporter.

Exposes /metrics endpoint for Prometheus scraping.
Uses start_http_server() which runs in a background thread
(does not conflict with the uvicorn event loop).
"""

import logging

from prometheus_client import Counter, Gauge, Info, start_http_server

from domain.entities.snapshot import Snapshot

logger = logging.getLogger(__name__)

# ============== Host Gauges ==============

cpu_usage = Gauge(
    'companion_cpu_usage_percent',
    'Host CPU usage percentage'
)
memory_usage = Gauge(
    'companion_memory_usage_percent',
    'Host memory usage percentage'
)
memory_used_gb = Gauge(
    'companion_memory_used_gb',
    'Host memory used in GB'
)
uptime_seconds = Gauge(
    'companion_uptime_seconds',
    'Host uptime in seconds'
)

# ============== Array / Network ==============

array_usage = Gauge(
    'companion_array_usage_percent',
    'Array usage percentage'
)
array_used_tb = Gauge(
    'companion_array_used_tb',
    'Array used capacity in TB'
)
network_rate_mbps = Gauge(
    'companion_network_rate_mbps',
    'Network throughput of the tracked interface',
    ['interface', 'direction']  # rx, tx
)

# ============== Workloads ==============

containers = Gauge(
    'companion_containers',
    'Containers in the inventory',
    ['state']  # running, stopped
)
vms = Gauge(
    'companion_vms',
    'Virtual machines known to libvirt',
    ['state']  # running, stopped
)

# ============== Cycles ==============

snapshots_total = Counter(
    'companion_snapshots_total',
    'Snapshots assembled'
)
collector_failures_total = Counter(
    'companion_collector_failures_total',
    'Collector failures or timeouts during snapshot assembly',
    ['collector']
)

# ============== Target Info ==============

companion_info = Info('companion', 'Companion target information')


def record_snapshot(snapshot: Snapshot) -> None:
    """Update all gauges from an assembled snapshot."""
    snapshots_total.inc()

    cpu_usage.set(snapshot.host.cpu_percent)
    memory_usage.set(snapshot.host.memory.used_percent)
    memory_used_gb.set(snapshot.host.memory.used_gb)
    uptime_seconds.set(snapshot.host.uptime_seconds)

    if snapshot.array_usage is not None:
        array_usage.set(snapshot.array_usage.used_percent)
        array_used_tb.set(snapshot.array_usage.used_tb)

    network = snapshot.network
    if network is not None:
        if network.rx_rate_mbps is not None:
            network_rate_mbps.labels(network.interface_name, 'rx').set(network.rx_rate_mbps)
        if network.tx_rate_mbps is not None:
            network_rate_mbps.labels(network.interface_name, 'tx').set(network.tx_rate_mbps)

    running_containers = sum(1 for c in snapshot.containers if c.running)
    containers.labels('running').set(running_containers)
    containers.labels('stopped').set(len(snapshot.containers) - running_containers)

    running_vms = sum(1 for vm in snapshot.vms if vm.running)
    vms.labels('running').set(running_vms)
    vms.labels('stopped').set(len(snapshot.vms) - running_vms)


def record_collector_failure(collector: str) -> None:
    collector_failures_total.labels(collector).inc()


def set_target_info(target: str, hostname: str = "") -> None:
    companion_info.info({'target': target, 'hostname': hostname})


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus HTTP metrics server in a background thread.

    This is non-blocking and runs alongside the API server.
    Metrics are available at http://localhost:{port}/metrics
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        logger.error(f"Failed to start Prometheus metrics server: {e}")
