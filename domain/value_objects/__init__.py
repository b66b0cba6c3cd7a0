"""Domain value objects"""

from domain.value_objects.counter_sample import CounterSample, RateResult

__all__ = [
    "CounterSample",
    "RateResult",
]
