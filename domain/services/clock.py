import asyncio
import time
from datetime import datetime, timezone


class Clock:
    """Time source shared by samplers and caches.

    ``now()`` is monotonic and only meaningful for differences; ``wall()`` is
    used for the capture timestamp.
    """

    def now(self) -> float:
        return time.monotonic()

    def wall(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
