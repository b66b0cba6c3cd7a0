import asyncio
import logging
import re
from typing import Optional, Tuple

from domain.entities.snapshot import NetworkSnapshot
from domain.errors import ExecutionError, ParseError
from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from infrastructure.monitoring.rate_tracker import RateTracker
from shared.constants import CMD_NET_COUNTERS, DEFAULT_INTERFACE

logger = logging.getLogger(__name__)

_INTERFACE_UNSAFE = re.compile(r"[^a-zA-Z0-9_.:-]")


def sanitize_interface_name(name: Optional[str]) -> str:
    """Strip anything that is not valid in a Linux interface name."""
    if not name or not isinstance(name, str):
        return ""
    return _INTERFACE_UNSAFE.sub("", name)


class NetworkStatsCollector:
    """Throughput of one network interface from its cumulative byte counters"""

    def __init__(
        self,
        executor: ICommandExecutor,
        tracker: Optional[RateTracker] = None,
        interface: str = DEFAULT_INTERFACE,
        clock: Optional[Clock] = None,
    ):
        self.executor = executor
        self.tracker = tracker or RateTracker()
        self.clock = clock or Clock()
        self.interface = sanitize_interface_name(interface) or DEFAULT_INTERFACE
        self._last_interface: Optional[str] = None
        self._lock = asyncio.Lock()

    def set_interface(self, interface: str) -> None:
        self.interface = sanitize_interface_name(interface) or DEFAULT_INTERFACE

    async def collect(self) -> Optional[NetworkSnapshot]:
        """
        Sample rx/tx counters.

        Returns None when the interface counters cannot be read. Rates are
        None on the first sample for an interface.
        """
        async with self._lock:
            iface = self.interface
            if self._last_interface is not None and self._last_interface != iface:
                logger.info("Network interface changed %s -> %s, resetting rate series",
                            self._last_interface, iface)
                await self.tracker.forget(f"{self._last_interface}:rx")
                await self.tracker.forget(f"{self._last_interface}:tx")

            try:
                rx_bytes, tx_bytes = await self._read_counters(iface)
            except (ExecutionError, ParseError) as e:
                logger.warning("Network stats unavailable for %s: %s", iface, e)
                return None

            self._last_interface = iface
            now = self.clock.now()
            rx_rate = await self.tracker.sample(f"{iface}:rx", rx_bytes, now)
            tx_rate = await self.tracker.sample(f"{iface}:tx", tx_bytes, now)

        return NetworkSnapshot(
            interface_name=iface,
            rx_bytes=rx_bytes,
            tx_bytes=tx_bytes,
            rx_rate_mbps=rx_rate.to_mbps(),
            tx_rate_mbps=tx_rate.to_mbps(),
        )

    async def _read_counters(self, iface: str) -> Tuple[int, int]:
        raw = await self.executor.execute(CMD_NET_COUNTERS.format(iface=iface))
        tokens = raw.split()
        try:
            return int(tokens[0]), int(tokens[1])
        except (IndexError, ValueError):
            raise ParseError(f"network counters for {iface}", "expected two integers", raw)
