"""
Error taxonomy for the metrics core.

Collectors catch ExecutionError and ParseError at their own boundary and
degrade the affected snapshot field. ConfigurationError is only raised at
startup, when the transport to the target host is being built.
"""

from typing import Optional


class CompanionError(Exception):
    """Base class for all companion errors."""
    pass


class ExecutionError(CompanionError):
    """An external command failed, timed out or could not be spawned."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        message = stderr.strip() or f'Command "{command}" failed with exit code {exit_code}'
        super().__init__(message)

    @property
    def timed_out(self) -> bool:
        return self.exit_code == -1 and "timed out" in self.stderr


class ParseError(CompanionError):
    """An external tool produced output of an unexpected shape."""

    def __init__(self, source: str, detail: str, raw: Optional[str] = None):
        self.source = source
        self.detail = detail
        self.raw = raw
        super().__init__(f"Unable to parse {source}: {detail}")


class ConfigurationError(CompanionError):
    """Required connection or target parameters are missing or invalid."""
    pass


class StaleDataError(CompanionError):
    """
    Cached data is older than its staleness threshold.

    Never surfaced to callers: VmInventory serves the stale value instead.
    """
    pass
