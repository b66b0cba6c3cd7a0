"""
Pure arithmetic over cumulative OS counters.

The kernel only exposes ever-growing tick and byte counters, so every
"current" figure is derived from two readings and the time between them.
"""

import math
from dataclasses import dataclass

from domain.errors import ParseError
from domain.value_objects.counter_sample import CounterSample, RateResult

KIB = 1024
TIB = 1024 ** 4


@dataclass(frozen=True)
class CpuTicks:
    """Aggregate idle and total ticks from the first line of /proc/stat"""

    idle: int
    total: int


def compute_rate(
    previous: CounterSample,
    current: CounterSample,
    clamp_negative: bool = True,
) -> RateResult:
    """
    Rate per second between two samples of the same series.

    Args:
        previous: Older sample
        current: Newer sample
        clamp_negative: Treat a decreasing counter (reset or wrap) as no change

    Returns:
        RateResult, unknown when no time has elapsed
    """
    elapsed = current.timestamp - previous.timestamp
    if elapsed <= 0:
        return RateResult.unknown()

    delta = current.value - previous.value
    if clamp_negative:
        delta = max(delta, 0)
    return RateResult(delta / elapsed)


def parse_cpu_line(line: str) -> CpuTicks:
    """Parse ``cpu  user nice system idle iowait irq softirq ...``."""
    fields = line.strip().split()
    if not fields or not fields[0].startswith("cpu"):
        raise ParseError("/proc/stat", "missing aggregate cpu line", line)

    values = []
    for raw in fields[1:]:
        try:
            values.append(int(raw))
        except ValueError:
            values.append(0)

    # idle + iowait
    idle = sum(values[3:5])
    return CpuTicks(idle=idle, total=sum(values))


def cpu_busy_percent(first: CpuTicks, second: CpuTicks) -> float:
    idle_delta = second.idle - first.idle
    total_delta = second.total - first.total
    if total_delta <= 0:
        return 0.0
    return clamp((1 - idle_delta / total_delta) * 100, 0.0, 100.0)


def clamp(value: float, low: float, high: float) -> float:
    if value is None or not math.isfinite(value):
        return low
    return min(max(value, low), high)


def round2(value: float) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, 2)


def kb_to_gb(kilobytes: float) -> float:
    return round2(kilobytes / KIB / KIB)


def bytes_to_tb(num_bytes: float) -> float:
    return round2(num_bytes / TIB if num_bytes else 0.0)
