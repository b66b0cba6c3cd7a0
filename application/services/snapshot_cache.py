import asyncio
import logging
from typing import Optional

from domain.entities.snapshot import Snapshot
from domain.services.clock import Clock
from domain.services.snapshot_source import ISnapshotSource
from shared.constants import MIN_REFRESH_SECONDS

logger = logging.getLogger(__name__)


class PullSnapshotService(ISnapshotSource):
    """
    Snapshot source for request/response consumers.

    Serves the last snapshot until ``refresh_interval`` (never below
    MIN_REFRESH_SECONDS) has passed. Concurrent callers wait on the same
    lock, so at most one assembly cycle is in flight.
    """

    def __init__(
        self,
        source: ISnapshotSource,
        clock: Optional[Clock] = None,
        refresh_interval: float = 30.0,
    ):
        self.source = source
        self.clock = clock or Clock()
        self.refresh_interval = max(float(MIN_REFRESH_SECONDS), refresh_interval)
        self._snapshot: Optional[Snapshot] = None
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()
        self.last_was_cached = False

    @property
    def cached_snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def _is_fresh(self) -> bool:
        if self._snapshot is None or self._fetched_at is None:
            return False
        return self.clock.now() - self._fetched_at < self.refresh_interval

    async def get_snapshot(self, force: bool = False) -> Snapshot:
        async with self._lock:
            if not force and self._is_fresh():
                self.last_was_cached = True
                return self._snapshot

            snapshot = await self.source.get_snapshot(force=True)
            self._snapshot = snapshot
            self._fetched_at = self.clock.now()
            self.last_was_cached = False
            return snapshot

    def invalidate(self) -> None:
        self._fetched_at = None
