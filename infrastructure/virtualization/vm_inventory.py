import asyncio
import logging
import re
from typing import List, Optional

from domain.entities.virtual_machine import VirtualMachine
from domain.errors import ExecutionError, ParseError
from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from shared.constants import CMD_VIRSH_LIST_ALL, VM_CACHE_SECONDS

logger = logging.getLogger(__name__)

_COLUMN_SPLIT = re.compile(r"\s{2,}")
_SEPARATOR = re.compile(r"^-+$")


def parse_virsh_list(text: str) -> List[VirtualMachine]:
    """
    Parse the table printed by ``virsh list``.

     Id   Name        State
    ----------------------------
     1    Windows11   running
     -    Ubuntu      shut off
    """
    vms = []
    for line in text.splitlines():
        stripped = line.strip()
        # Shut-off domains have "-" as their Id, so only the all-dash rule is skipped
        if not stripped or stripped.lower().startswith("id") or _SEPARATOR.match(stripped):
            continue
        fields = _COLUMN_SPLIT.split(stripped)
        if len(fields) < 3:
            continue
        vms.append(VirtualMachine(name=fields[1], state=fields[2].lower()))
    return vms


class VmInventory:
    """VM list polled through virsh and cached for ``stale_after`` seconds"""

    def __init__(
        self,
        executor: ICommandExecutor,
        clock: Optional[Clock] = None,
        stale_after: float = VM_CACHE_SECONDS,
        command: str = CMD_VIRSH_LIST_ALL,
    ):
        self.executor = executor
        self.clock = clock or Clock()
        self.stale_after = stale_after
        self.command = command
        self._value: List[VirtualMachine] = []
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self.clock.now() - self._fetched_at >= self.stale_after

    async def get(self) -> List[VirtualMachine]:
        """Cached VMs; polls when stale and keeps the old value if polling fails"""
        if not self.is_stale():
            return self._value

        async with self._lock:
            # Another caller may have polled while we waited
            if not self.is_stale():
                return self._value
            try:
                raw = await self.executor.execute(self.command)
                vms = parse_virsh_list(raw)
            except (ExecutionError, ParseError) as e:
                logger.warning("VM poll failed, serving cached list (%d vms): %s", len(self._value), e)
                return self._value

            self._value = vms
            self._fetched_at = self.clock.now()
            logger.debug("VM inventory refreshed: %d vms", len(vms))
            return self._value

    def invalidate(self) -> None:
        self._fetched_at = None
