from dataclasses import dataclass
from typing import Optional

BITS_PER_BYTE = 8
BITS_PER_MEGABIT = 1_000_000


@dataclass(frozen=True)
class CounterSample:
    """One reading of a cumulative counter, taken at a monotonic instant"""

    value: int
    timestamp: float

    def __post_init__(self):
        if self.value < 0:
            raise ValueError("CounterSample value must be non-negative")


@dataclass(frozen=True)
class RateResult:
    """Rate of change per second, or unknown when there is nothing to compare against"""

    rate_per_second: Optional[float] = None

    @classmethod
    def unknown(cls) -> "RateResult":
        return cls(None)

    @property
    def known(self) -> bool:
        return self.rate_per_second is not None

    def to_mbps(self) -> Optional[float]:
        """Interpret the rate as bytes/second and convert to megabits/second."""
        if self.rate_per_second is None:
            return None
        return self.rate_per_second * BITS_PER_BYTE / BITS_PER_MEGABIT
