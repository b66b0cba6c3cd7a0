"""
Snapshot Broadcaster.

Push transport core: on a fixed tick, assembles a fresh snapshot and offers
it to every subscriber. Each subscriber owns a one-slot queue; when a
consumer falls behind, the older undelivered snapshot is replaced by the
newer one, so a slow consumer never delays the ticker or other consumers.

Usage:
    broadcaster = container.broadcaster()
    broadcaster.start()

    async with broadcaster.subscribe() as subscription:
        async for snapshot in subscription:
            await websocket.send_json(snapshot.to_dict())
"""

import asyncio
import logging
from typing import Optional, Set

from domain.entities.snapshot import Snapshot
from domain.services.clock import Clock
from domain.services.snapshot_source import ISnapshotSource
from shared.constants import PUSH_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over snapshots pushed to one consumer."""

    def __init__(self, broadcaster: "SnapshotBroadcaster"):
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, snapshot: Snapshot) -> None:
        """Deliver without blocking; replaces an unconsumed snapshot."""
        if self._closed:
            return
        if self._queue.full():
            try:
                self._queue.get_nowait()
                self.dropped += 1
            except asyncio.QueueEmpty:
                pass
        self._queue.put_nowait(snapshot)

    async def get(self) -> Optional[Snapshot]:
        """Next snapshot, or None once the subscription is closed."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._broadcaster._unsubscribe(self)
        # Wake a consumer blocked in get()
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Snapshot:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class SnapshotBroadcaster:
    """Fixed-interval producer feeding all subscriptions."""

    def __init__(
        self,
        source: ISnapshotSource,
        clock: Optional[Clock] = None,
        interval: float = PUSH_INTERVAL_SECONDS,
    ):
        self.source = source
        self.clock = clock or Clock()
        self.interval = interval
        self._subscriptions: Set[Subscription] = set()
        self._task: Optional[asyncio.Task] = None
        self.latest: Optional[Snapshot] = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.add(subscription)
        logger.info("Snapshot subscriber added (total=%d)", self.subscriber_count)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        logger.info("Snapshot subscriber removed (total=%d)", self.subscriber_count)

    def publish(self, snapshot: Snapshot) -> int:
        """Offer a snapshot to every subscriber; returns how many received it."""
        self.latest = snapshot
        subscribers = list(self._subscriptions)
        for subscription in subscribers:
            subscription.offer(snapshot)
        return len(subscribers)

    async def tick(self) -> bool:
        """Run one cycle. Returns False when there was nobody to serve."""
        if not self._subscriptions:
            return False
        try:
            snapshot = await self.source.get_snapshot(force=True)
        except Exception as e:
            logger.error("Snapshot push cycle failed: %s", e)
            return False
        self.publish(snapshot)
        return True

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="snapshot-broadcaster")
        logger.info("Snapshot broadcaster started (interval=%.1fs)", self.interval)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for subscription in list(self._subscriptions):
            subscription.close()
        logger.info("Snapshot broadcaster stopped")

    async def _run(self) -> None:
        while True:
            started = self.clock.now()
            await self.tick()
            # Fixed period: assembly time counts against the interval
            elapsed = self.clock.now() - started
            await self.clock.sleep(max(0.0, self.interval - elapsed))
