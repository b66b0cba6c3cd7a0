from dataclasses import dataclass, field, replace
from typing import List, Optional

RUNNING_STATUS_PREFIX = "up"


@dataclass(frozen=True)
class PortMapping:
    """A published port as reported by ``docker ps``.

    Segments that do not look like ``[hostIp:]hostPort->containerPort[/proto]``
    keep only ``display``.
    """

    display: str
    host_ip: Optional[str] = None
    host_port: Optional[str] = None
    container_port: Optional[str] = None
    protocol: Optional[str] = None

    @property
    def is_published(self) -> bool:
        return bool(self.host_port)

    def to_dict(self) -> dict:
        if self.host_port is None and self.container_port is None:
            return {"display": self.display}
        return {
            "hostIp": self.host_ip,
            "hostPort": self.host_port,
            "containerPort": self.container_port,
            "protocol": self.protocol,
            "display": self.display,
        }


@dataclass(frozen=True)
class ContainerMetrics:
    """Runtime statistics from ``docker stats``"""

    cpu_percent: Optional[float] = None
    mem_percent: Optional[float] = None
    mem_used_bytes: Optional[float] = None
    mem_limit_bytes: Optional[float] = None
    net_rx_bytes: Optional[float] = None
    net_tx_bytes: Optional[float] = None
    net_rx_mbps: Optional[float] = None
    net_tx_mbps: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "cpuPercent": self.cpu_percent,
            "memPercent": self.mem_percent,
            "memUsedBytes": self.mem_used_bytes,
            "memLimitBytes": self.mem_limit_bytes,
            "netRxBytes": self.net_rx_bytes,
            "netTxBytes": self.net_tx_bytes,
            "netRxMbps": self.net_rx_mbps,
            "netTxMbps": self.net_tx_mbps,
        }


@dataclass(frozen=True)
class Container:
    """Docker container as held by the inventory. Identity is ``id``."""

    id: str
    name: str = ""
    image: str = ""
    status: str = ""
    ports: List[PortMapping] = field(default_factory=list)
    container_ip: Optional[str] = None
    url: Optional[str] = None
    icon: Optional[str] = None
    metrics: Optional[ContainerMetrics] = None

    @property
    def running(self) -> bool:
        return is_running_status(self.status)

    def with_metrics(self, metrics: Optional[ContainerMetrics]) -> "Container":
        return replace(self, metrics=metrics)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "status": self.status,
            "running": self.running,
            "ports": [p.to_dict() for p in self.ports],
            "containerIp": self.container_ip,
            "url": self.url,
            "icon": self.icon,
            "metrics": self.metrics.to_dict() if self.metrics else None,
        }


def is_running_status(status: Optional[str]) -> bool:
    return str(status or "").strip().lower().startswith(RUNNING_STATUS_PREFIX)
