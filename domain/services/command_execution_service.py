"""
Command Execution Service

Defines the contract every collector uses to reach the target host,
independent of how the command gets there (OpenSSH client, local shell).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional


@dataclass
class CommandExecutionResult:
    """
    Result of command execution.

    Produced by the executors before they decide whether to raise.
    """
    stdout: str
    stderr: str
    exit_code: int
    execution_time: float

    @property
    def success(self) -> bool:
        """Check if command executed successfully"""
        return self.exit_code == 0


class ICommandExecutor(ABC):
    """Runs shell commands against the monitored host"""

    @abstractmethod
    async def execute(self, command: str, timeout: Optional[float] = None) -> str:
        """
        Run a command and return its stdout.

        Raises:
            ExecutionError: non-zero exit, timeout or spawn failure
        """
        pass

    @abstractmethod
    def stream(self, command: str) -> AsyncIterator[str]:
        """
        Run a long-lived command and yield its stdout line by line.

        Raises:
            ExecutionError: when the process exits or cannot be started
        """
        pass

    @property
    @abstractmethod
    def target(self) -> str:
        """Human-readable description of the host commands run against"""
        pass
