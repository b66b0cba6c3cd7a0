"""
Snapshot Source Interface

The single capability every transport consumes. The assembler produces
snapshots; the pull cache decorates it; the push broadcaster drives it.
"""

from abc import ABC, abstractmethod

from domain.entities.snapshot import Snapshot


class ISnapshotSource(ABC):
    """Anything that can hand out a Snapshot"""

    @abstractmethod
    async def get_snapshot(self, force: bool = False) -> Snapshot:
        """Return a snapshot; ``force`` bypasses any caching layer."""
        pass
