import logging
import shutil
from pathlib import Path
from typing import List, Optional

from domain.errors import ConfigurationError
from infrastructure.local.local_executor import SubprocessCommandExecutor
from shared.config.settings import SSHConfig

logger = logging.getLogger(__name__)


class SSHCommandExecutor(SubprocessCommandExecutor):
    """SSH-based command execution through the OpenSSH client"""

    def __init__(self, ssh_config: SSHConfig, default_timeout: float = 10.0, ssh_binary: str = "ssh"):
        super().__init__(default_timeout)
        if not ssh_config.host:
            raise ConfigurationError("SSH host is not configured")
        self.config = ssh_config
        self.ssh_binary = ssh_binary

    @property
    def target(self) -> str:
        return f"{self.config.user}@{self.config.host}:{self.config.port}"

    def build_argv(self, command: str) -> List[str]:
        argv = [
            self.ssh_binary,
            "-o", "BatchMode=yes",
            "-o", "StrictHostKeyChecking=no",
            "-o", f"ConnectTimeout={self.config.connect_timeout}",
            # Detect a dead link within a few seconds on long-lived streams
            "-o", "ServerAliveInterval=2",
            "-o", "ServerAliveCountMax=2",
            "-p", str(self.config.port),
        ]
        key_path = self._key_path()
        if key_path:
            argv += ["-i", key_path]
        argv += [f"{self.config.user}@{self.config.host}", command]
        return argv

    def _key_path(self) -> Optional[str]:
        if not self.config.key_path:
            return None
        return str(Path(self.config.key_path).expanduser())

    def check_client_available(self) -> bool:
        """Check if the ssh client binary is on PATH"""
        available = shutil.which(self.ssh_binary) is not None
        if not available:
            logger.error("SSH client '%s' not found. Please ensure openssh-client is installed.", self.ssh_binary)
        return available
