import asyncio
import logging
from typing import Dict, Iterable

from domain.services.counter_math import compute_rate
from domain.value_objects.counter_sample import CounterSample, RateResult

logger = logging.getLogger(__name__)


class RateTracker:
    """
    Last-sample store for any number of cumulative counter series.

    Each call to ``sample()`` compares the new reading with the stored one
    for the same series key and replaces it. Access is serialized by a lock
    because the push ticker and pull requests can sample concurrently.
    """

    def __init__(self, clamp_negative: bool = True) -> None:
        self._clamp_negative = clamp_negative
        self._samples: Dict[str, CounterSample] = {}
        self._lock = asyncio.Lock()

    async def sample(self, series_key: str, raw_value: int, now: float) -> RateResult:
        """
        Record a reading and return the rate since the previous one.

        Returns unknown for the first reading of a series, and when ``now``
        does not advance past the stored timestamp; in the latter case the
        stored sample is kept so the next valid reading is compared against it.
        """
        current = CounterSample(value=max(int(raw_value), 0), timestamp=now)

        async with self._lock:
            previous = self._samples.get(series_key)
            if previous is None:
                self._samples[series_key] = current
                return RateResult.unknown()

            if now - previous.timestamp <= 0:
                logger.debug("Ignoring non-advancing sample for series '%s'", series_key)
                return RateResult.unknown()

            self._samples[series_key] = current
            return compute_rate(previous, current, clamp_negative=self._clamp_negative)

    async def forget(self, series_key: str) -> None:
        async with self._lock:
            self._samples.pop(series_key, None)

    async def retain(self, series_keys: Iterable[str]) -> None:
        """Drop every series not in ``series_keys``."""
        keep = set(series_keys)
        async with self._lock:
            for key in [k for k in self._samples if k not in keep]:
                del self._samples[key]

    async def reset(self) -> None:
        async with self._lock:
            self._samples.clear()

    def last_sample(self, series_key: str):
        return self._samples.get(series_key)

    def __contains__(self, series_key: str) -> bool:
        return series_key in self._samples

    def __len__(self) -> int:
        return len(self._samples)
