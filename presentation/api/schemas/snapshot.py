"""Snapshot wire schemas.

Field aliases are the camelCase names produced by the entities' ``to_dict()``;
FastAPI serializes responses by alias so HTTP and WebSocket payloads match.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MemorySchema(_WireModel):
    total_gb: float = Field(0.0, alias="totalGB")
    used_gb: float = Field(0.0, alias="usedGB")
    used_percent: float = Field(0.0, alias="usedPercent", ge=0, le=100)


class HostSchema(_WireModel):
    uptime_seconds: int = Field(0, alias="uptimeSeconds")
    cpu_percent: float = Field(0.0, alias="cpuPercent", ge=0, le=100)
    memory: MemorySchema = Field(default_factory=MemorySchema)
    hostname: str = ""


class NetworkSchema(_WireModel):
    interface_name: str = Field(..., alias="interfaceName")
    rx_bytes: int = Field(..., alias="rxBytes")
    tx_bytes: int = Field(..., alias="txBytes")
    rx_rate_mbps: Optional[float] = Field(None, alias="rxRateMbps", description="Null until a second sample exists")
    tx_rate_mbps: Optional[float] = Field(None, alias="txRateMbps", description="Null until a second sample exists")


class ArrayUsageSchema(_WireModel):
    total_tb: float = Field(0.0, alias="totalTB")
    used_tb: float = Field(0.0, alias="usedTB")
    used_percent: float = Field(0.0, alias="usedPercent", ge=0, le=100)


class PortSchema(_WireModel):
    display: str
    host_ip: Optional[str] = Field(None, alias="hostIp")
    host_port: Optional[str] = Field(None, alias="hostPort")
    container_port: Optional[str] = Field(None, alias="containerPort")
    protocol: Optional[str] = None


class ContainerMetricsSchema(_WireModel):
    cpu_percent: Optional[float] = Field(None, alias="cpuPercent")
    mem_percent: Optional[float] = Field(None, alias="memPercent")
    mem_used_bytes: Optional[float] = Field(None, alias="memUsedBytes")
    mem_limit_bytes: Optional[float] = Field(None, alias="memLimitBytes")
    net_rx_bytes: Optional[float] = Field(None, alias="netRxBytes")
    net_tx_bytes: Optional[float] = Field(None, alias="netTxBytes")
    net_rx_mbps: Optional[float] = Field(None, alias="netRxMbps")
    net_tx_mbps: Optional[float] = Field(None, alias="netTxMbps")


class ContainerSchema(_WireModel):
    id: str
    name: str = ""
    image: str = ""
    status: str = ""
    running: bool = False
    ports: list[PortSchema] = Field(default_factory=list)
    container_ip: Optional[str] = Field(None, alias="containerIp")
    url: Optional[str] = None
    icon: Optional[str] = None
    metrics: Optional[ContainerMetricsSchema] = None


class VmSchema(_WireModel):
    name: str
    state: str
    running: bool = False


class SnapshotSchema(_WireModel):
    # Kept as the ISO string from to_dict() so both transports emit it verbatim
    captured_at: str = Field(..., alias="capturedAt", description="ISO-8601 UTC capture time")
    host: HostSchema
    network: Optional[NetworkSchema] = None
    array_usage: Optional[ArrayUsageSchema] = Field(None, alias="arrayUsage")
    containers: list[ContainerSchema] = Field(default_factory=list)
    vms: list[VmSchema] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """Pull transport response."""

    snapshot: SnapshotSchema
    cached: bool = Field(False, description="True when served from the refresh-interval cache")


class ContainerListResponse(BaseModel):
    """Container inventory."""

    containers: list[ContainerSchema] = Field(default_factory=list)
    total: int = Field(0, description="Total container count")


class VmListResponse(BaseModel):
    """VM inventory."""

    vms: list[VmSchema] = Field(default_factory=list)
    total: int = Field(0, description="Total VM count")
