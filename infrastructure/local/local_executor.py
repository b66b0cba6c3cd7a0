import asyncio
import os
import signal
import logging
from abc import abstractmethod
from typing import AsyncIterator, List, Optional

from domain.errors import ExecutionError
from domain.services.command_execution_service import CommandExecutionResult, ICommandExecutor

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


class SubprocessCommandExecutor(ICommandExecutor):
    """Shared asyncio-subprocess plumbing for the local and SSH executors"""

    def __init__(self, default_timeout: float = 10.0):
        self.default_timeout = default_timeout

    @abstractmethod
    def build_argv(self, command: str) -> List[str]:
        """Argument vector that runs ``command`` on the target"""
        pass

    async def execute(self, command: str, timeout: Optional[float] = None) -> str:
        """Execute command and return stdout, raising ExecutionError on failure"""
        timeout = timeout or self.default_timeout
        argv = self.build_argv(command)

        logger.debug("Executing on %s: %s", self.target, command[:100])

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        process = await self._spawn(argv, command)

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            raise ExecutionError(command, -1, f"Command timed out after {timeout} seconds")
        finally:
            # Also reached when the caller is cancelled, e.g. by a collector timeout
            if process.returncode is None:
                await self._terminate(process)

        result = CommandExecutionResult(
            stdout=stdout.decode('utf-8', errors='replace').strip(),
            stderr=stderr.decode('utf-8', errors='replace').strip(),
            exit_code=process.returncode or 0,
            execution_time=loop.time() - start_time,
        )

        if not result.success:
            raise ExecutionError(command, result.exit_code, result.stderr)

        return result.stdout

    async def stream(self, command: str) -> AsyncIterator[str]:
        """Yield non-empty stdout lines until the process exits"""
        argv = self.build_argv(command)
        process = await self._spawn(argv, command)
        stderr_task = asyncio.create_task(self._drain_stderr(process, command))

        try:
            async for raw in process.stdout:
                line = raw.decode('utf-8', errors='replace').strip()
                if line:
                    yield line
            exit_code = await process.wait()
            stderr_text = await stderr_task
        finally:
            if process.returncode is None:
                await self._terminate(process)
            if not stderr_task.done():
                stderr_task.cancel()

        raise ExecutionError(command, exit_code, stderr_text)

    async def _spawn(self, argv: List[str], command: str) -> asyncio.subprocess.Process:
        try:
            # Own process group, so _terminate() reaches the shell's children too
            return await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise ExecutionError(command, -1, f"Unable to start {argv[0]}: {e}")

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except PermissionError:
            process.kill()
        await process.wait()

    @staticmethod
    async def _drain_stderr(process: asyncio.subprocess.Process, command: str) -> str:
        tail: List[str] = []
        async for raw in process.stderr:
            line = raw.decode('utf-8', errors='replace').strip()
            if not line:
                continue
            logger.warning("stderr from '%s': %s", command[:60], line)
            tail.append(line)
            del tail[:-STDERR_TAIL_LINES]
        return "\n".join(tail)


class LocalCommandExecutor(SubprocessCommandExecutor):
    """Runs commands through the local POSIX shell"""

    def __init__(self, shell: str = "/bin/sh", default_timeout: float = 10.0):
        super().__init__(default_timeout)
        self.shell = shell

    @property
    def target(self) -> str:
        return "localhost"

    def build_argv(self, command: str) -> List[str]:
        return [self.shell, "-c", command]
