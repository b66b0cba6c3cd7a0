"""Domain services"""

from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor, CommandExecutionResult
from domain.services.counter_math import CpuTicks, compute_rate, cpu_busy_percent, parse_cpu_line
from domain.services.snapshot_source import ISnapshotSource

__all__ = [
    "Clock",
    "ICommandExecutor",
    "CommandExecutionResult",
    "CpuTicks",
    "compute_rate",
    "cpu_busy_percent",
    "parse_cpu_line",
    "ISnapshotSource",
]
