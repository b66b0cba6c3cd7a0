from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os
from dotenv import load_dotenv

from domain.errors import ConfigurationError
from shared.constants import MIN_REFRESH_SECONDS

load_dotenv()

TRANSPORTS = ("local", "ssh")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SSHConfig:
    """SSH configuration for remote command execution"""
    host: str = ""
    port: int = 22
    user: str = "root"
    key_path: Optional[str] = None
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> "SSHConfig":
        return cls(
            host=os.getenv("SSH_HOST", "").strip(),
            port=_env_int("SSH_PORT", 22),
            user=os.getenv("SSH_USER", "root").strip() or "root",
            key_path=os.getenv("SSH_KEY_PATH") or None,
            connect_timeout=_env_int("SSH_CONNECT_TIMEOUT", 10),
        )

    def validate(self) -> None:
        if not self.host:
            raise ConfigurationError("SSH_HOST is required when TRANSPORT=ssh")
        if not 1 <= self.port <= 65535:
            raise ConfigurationError("SSH_PORT must be between 1 and 65535")
        if self.key_path and not Path(self.key_path).expanduser().exists():
            raise ConfigurationError(f"SSH key not found: {self.key_path}")


@dataclass
class CollectorConfig:
    """What to sample and how long each sample may take"""
    transport: str = "local"
    network_interface: str = "eth0"
    array_mount: str = "/mnt/user"
    fallback_host: Optional[str] = None
    cpu_sample_delay: float = 0.4
    command_timeout: float = 10.0
    collector_timeout: float = 15.0
    vm_cache_seconds: float = 60.0
    event_restart_delay: float = 5.0
    show_containers: bool = True
    show_vms: bool = True
    show_stopped: bool = True
    collect_container_stats: bool = False

    @classmethod
    def from_env(cls) -> "CollectorConfig":
        return cls(
            transport=os.getenv("TRANSPORT", "local").strip().lower(),
            network_interface=os.getenv("NET_IFACE", "eth0"),
            array_mount=os.getenv("ARRAY_MOUNT", "/mnt/user"),
            fallback_host=os.getenv("UNRAID_HOST") or None,
            cpu_sample_delay=_env_float("CPU_SAMPLE_DELAY", 0.4),
            command_timeout=_env_float("COMMAND_TIMEOUT", 10.0),
            collector_timeout=_env_float("COLLECTOR_TIMEOUT", 15.0),
            vm_cache_seconds=_env_float("VM_CACHE_SECONDS", 60.0),
            event_restart_delay=_env_float("EVENT_RESTART_DELAY", 5.0),
            show_containers=_env_bool("SHOW_DOCKER_CONTAINERS", True),
            show_vms=_env_bool("SHOW_VM_LIST", True),
            show_stopped=_env_bool("SHOW_STOPPED_SERVICES", True),
            collect_container_stats=_env_bool("COLLECT_CONTAINER_STATS", False),
        )

    def validate(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(f'TRANSPORT must be one of {", ".join(TRANSPORTS)}')


@dataclass
class ServerConfig:
    """HTTP / WebSocket server configuration"""
    host: str = "0.0.0.0"
    port: int = 8510
    refresh_interval_seconds: float = 30.0
    push_interval_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8510),
            refresh_interval_seconds=max(
                float(MIN_REFRESH_SECONDS),
                _env_float("REFRESH_INTERVAL_SECONDS", 30.0),
            ),
            push_interval_seconds=_env_float("PUSH_INTERVAL_SECONDS", 1.0),
        )


@dataclass
class MonitoringConfig:
    """Prometheus exporter configuration"""
    enabled: bool = False
    metrics_port: int = 9090

    @classmethod
    def from_env(cls) -> "MonitoringConfig":
        return cls(
            enabled=_env_bool("MONITORING_ENABLED", False),
            metrics_port=_env_int("METRICS_PORT", 9090),
        )


@dataclass
class Settings:
    """Application settings"""
    ssh: SSHConfig
    collector: CollectorConfig
    server: ServerConfig
    monitoring: MonitoringConfig
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ssh=SSHConfig.from_env(),
            collector=CollectorConfig.from_env(),
            server=ServerConfig.from_env(),
            monitoring=MonitoringConfig.from_env(),
            debug=_env_bool("DEBUG", False),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )

    def validate(self) -> None:
        """Check that the configured transport can actually reach its target."""
        self.collector.validate()
        if self.collector.transport == "ssh":
            self.ssh.validate()
