"""
Snapshot entities.

A Snapshot is the unit handed to every transport. Its ``to_dict()`` shape is
the wire contract: camelCase field names, Mbps for throughput, GB/TB for
capacities and 0-100 floats for percentages.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from domain.entities.container import Container
from domain.entities.virtual_machine import VirtualMachine


@dataclass
class MemoryStats:
    """Host memory usage"""

    total_gb: float = 0.0
    used_gb: float = 0.0
    used_percent: float = 0.0

    def to_dict(self) -> dict:
        return {
            "totalGB": self.total_gb,
            "usedGB": self.used_gb,
            "usedPercent": self.used_percent,
        }


@dataclass
class HostSnapshot:
    """Host-level statistics"""

    uptime_seconds: int = 0
    cpu_percent: float = 0.0
    memory: MemoryStats = field(default_factory=MemoryStats)
    hostname: str = ""

    @property
    def uptime_human(self) -> str:
        return format_duration(self.uptime_seconds)

    def to_dict(self) -> dict:
        return {
            "uptimeSeconds": self.uptime_seconds,
            "cpuPercent": self.cpu_percent,
            "memory": self.memory.to_dict(),
            "hostname": self.hostname,
        }


@dataclass
class NetworkSnapshot:
    """Throughput of the tracked network interface"""

    interface_name: str
    rx_bytes: int
    tx_bytes: int
    rx_rate_mbps: Optional[float] = None
    tx_rate_mbps: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "interfaceName": self.interface_name,
            "rxBytes": self.rx_bytes,
            "txBytes": self.tx_bytes,
            "rxRateMbps": self.rx_rate_mbps,
            "txRateMbps": self.tx_rate_mbps,
        }


@dataclass
class ArrayUsage:
    """Capacity of the storage array mount"""

    total_tb: float = 0.0
    used_tb: float = 0.0
    used_percent: float = 0.0

    @classmethod
    def empty(cls) -> "ArrayUsage":
        return cls(0.0, 0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "totalTB": self.total_tb,
            "usedTB": self.used_tb,
            "usedPercent": self.used_percent,
        }


@dataclass
class Snapshot:
    """One fully assembled, timestamped set of metrics"""

    captured_at: datetime
    host: HostSnapshot
    network: Optional[NetworkSnapshot] = None
    array_usage: Optional[ArrayUsage] = None
    containers: List[Container] = field(default_factory=list)
    vms: List[VirtualMachine] = field(default_factory=list)

    def to_dict(self) -> dict:
        captured = self.captured_at
        if captured.tzinfo is None:
            captured = captured.replace(tzinfo=timezone.utc)
        return {
            "capturedAt": captured.isoformat(),
            "host": self.host.to_dict(),
            "network": self.network.to_dict() if self.network else None,
            "arrayUsage": self.array_usage.to_dict() if self.array_usage else None,
            "containers": [c.to_dict() for c in self.containers],
            "vms": [vm.to_dict() for vm in self.vms],
        }


def format_duration(seconds: int = 0) -> str:
    """Format seconds as e.g. ``3d 4h 12m``."""
    seconds = max(int(seconds or 0), 0)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)
