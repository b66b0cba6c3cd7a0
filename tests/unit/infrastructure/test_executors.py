"""Tests for the local shell and SSH command executors."""

import asyncio

import pytest

from domain.errors import ConfigurationError, ExecutionError
from infrastructure.local.local_executor import LocalCommandExecutor
from infrastructure.ssh.ssh_executor import SSHCommandExecutor
from shared.config.settings import SSHConfig


def is_alive(pid: int) -> bool:
    """True while ``pid`` exists and is not a zombie."""
    try:
        with open(f"/proc/{pid}/stat") as f:
            state = f.read().rsplit(")", 1)[1].split()[0]
    except (FileNotFoundError, ProcessLookupError, IndexError):
        return False
    return state != "Z"


async def wait_until_gone(pid: int, timeout: float = 2.0) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if not is_alive(pid):
            return True
        await asyncio.sleep(0.02)
    return not is_alive(pid)


async def wait_for_pids(pid_file, timeout: float = 2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if pid_file.exists():
            parts = pid_file.read_text().split()
            if len(parts) == 2:
                return int(parts[0]), int(parts[1])
        await asyncio.sleep(0.02)
    raise AssertionError("command never wrote its pids")


class TestLocalCommandExecutor:
    """Runs real /bin/sh commands."""

    @pytest.mark.asyncio
    async def test_execute_returns_stdout(self):
        executor = LocalCommandExecutor()
        assert await executor.execute("echo hello") == "hello"

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self):
        executor = LocalCommandExecutor()
        with pytest.raises(ExecutionError) as exc_info:
            await executor.execute("echo oops >&2; exit 3")
        assert exc_info.value.exit_code == 3
        assert "oops" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        executor = LocalCommandExecutor()
        with pytest.raises(ExecutionError) as exc_info:
            await executor.execute("sleep 5", timeout=0.1)
        assert exc_info.value.timed_out

    @pytest.mark.asyncio
    async def test_missing_shell_raises(self):
        executor = LocalCommandExecutor(shell="/nonexistent/shell")
        with pytest.raises(ExecutionError) as exc_info:
            await executor.execute("true")
        assert exc_info.value.exit_code == -1

    @pytest.mark.asyncio
    async def test_stream_yields_lines_then_raises(self):
        executor = LocalCommandExecutor()
        lines = []
        with pytest.raises(ExecutionError) as exc_info:
            async for line in executor.stream("printf 'a\\n\\nb\\n'; exit 4"):
                lines.append(line)
        assert lines == ["a", "b"]
        assert exc_info.value.exit_code == 4

    @pytest.mark.asyncio
    async def test_cancelled_command_kills_process_tree(self, tmp_path):
        pid_file = tmp_path / "pids"
        executor = LocalCommandExecutor()
        command = f"sleep 30 & echo $$ $! > {pid_file}; wait"

        task = asyncio.create_task(executor.execute(command, timeout=60))
        shell_pid, child_pid = await wait_for_pids(pid_file)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(task, timeout=0.05)

        assert await wait_until_gone(shell_pid)
        assert await wait_until_gone(child_pid)

    @pytest.mark.asyncio
    async def test_timeout_kills_process_tree(self, tmp_path):
        pid_file = tmp_path / "pids"
        executor = LocalCommandExecutor()

        with pytest.raises(ExecutionError):
            await executor.execute(f"sleep 30 & echo $$ $! > {pid_file}; wait", timeout=0.5)

        shell_pid, child_pid = await wait_for_pids(pid_file)
        assert await wait_until_gone(shell_pid)
        assert await wait_until_gone(child_pid)

    def test_target(self):
        assert LocalCommandExecutor().target == "localhost"


class TestSSHCommandExecutor:
    """Argument construction only; no network."""

    def test_requires_host(self):
        with pytest.raises(ConfigurationError):
            SSHCommandExecutor(SSHConfig(host=""))

    def test_argv(self):
        executor = SSHCommandExecutor(SSHConfig(host="tower", port=2222, user="admin", key_path="/keys/id"))

        argv = executor.build_argv("uptime")

        assert argv[0] == "ssh"
        assert "BatchMode=yes" in argv
        assert "ConnectTimeout=10" in argv
        assert argv[argv.index("-p") + 1] == "2222"
        assert argv[argv.index("-i") + 1] == "/keys/id"
        assert argv[-2:] == ["admin@tower", "uptime"]

    def test_argv_without_key(self):
        argv = SSHCommandExecutor(SSHConfig(host="tower")).build_argv("true")
        assert "-i" not in argv
        assert argv[-2] == "root@tower"

    def test_target(self):
        assert SSHCommandExecutor(SSHConfig(host="tower")).target == "root@tower:22"
