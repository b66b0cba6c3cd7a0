import asyncio
import json
import logging
from typing import Dict, List, Optional

from domain.entities.container import Container
from domain.errors import ExecutionError
from domain.services.command_execution_service import ICommandExecutor
from infrastructure.docker.parsers import build_container
from infrastructure.docker.runtime_stats import DockerStatsCollector
from shared.constants import (
    CMD_DOCKER_INSPECT,
    CMD_DOCKER_PS_ALL,
    CMD_DOCKER_PS_ONE,
    SHORT_ID_LENGTH,
)

logger = logging.getLogger(__name__)


class ContainerInventory:
    """
    In-memory container list kept current by full refreshes and per-id upserts.

    The first ``get()`` triggers a full refresh; afterwards the event
    listener keeps the list fresh through ``refresh_one()`` and ``remove()``.

    Every read-modify-write sequence (full refresh, upsert, removal) holds
    ``_update_lock`` from the first docker command to the final swap, so a
    slower full refresh can never overwrite a newer per-id update. ``_lock``
    only guards the list/index pair for readers.
    """

    def __init__(
        self,
        executor: ICommandExecutor,
        fallback_host: Optional[str] = None,
        stats_collector: Optional[DockerStatsCollector] = None,
    ):
        self.executor = executor
        self.fallback_host = fallback_host
        self.stats_collector = stats_collector
        self._containers: List[Container] = []
        self._index: Dict[str, Container] = {}
        self._initialized = False
        self._lock = asyncio.Lock()
        self._update_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def get(self) -> List[Container]:
        """Current containers, in ``docker ps`` order"""
        if not self._initialized:
            async with self._update_lock:
                # Concurrent first callers share one refresh
                if not self._initialized:
                    await self._rebuild()

        async with self._lock:
            containers = list(self._containers)

        if self.stats_collector is None:
            return containers

        metrics = await self.stats_collector.collect()
        if not metrics:
            return containers
        return [
            c.with_metrics(metrics.get(c.id) or metrics.get(c.id[:SHORT_ID_LENGTH]) or metrics.get(c.name))
            for c in containers
        ]

    async def refresh_all(self) -> None:
        """Rebuild the whole inventory; a failed listing leaves it empty"""
        async with self._update_lock:
            await self._rebuild()

    async def refresh_one(self, container_id: str) -> None:
        """Re-read one container; removes it when docker no longer lists it"""
        async with self._update_lock:
            await self._refresh_one(container_id)

    async def remove(self, container_id: str) -> None:
        async with self._update_lock:
            await self._remove(container_id)

    async def _rebuild(self) -> None:
        try:
            raw = await self.executor.execute(CMD_DOCKER_PS_ALL)
        except ExecutionError as e:
            logger.warning("Container listing failed: %s", e)
            async with self._lock:
                self._containers, self._index = [], {}
                self._initialized = True
            return

        summaries = _parse_json_lines(raw)
        ids = [s["ID"] for s in summaries if s.get("ID")]
        details = await self._inspect_many(ids)

        containers = []
        for summary in summaries:
            container = build_container(summary, _lookup(details, summary.get("ID")), self.fallback_host)
            if container is not None:
                containers.append(container)

        async with self._lock:
            self._containers, self._index = containers, {c.id: c for c in containers}
            self._initialized = True

        logger.info("Container inventory refreshed: %d containers", len(containers))

    async def _refresh_one(self, container_id: str) -> None:
        try:
            raw = await self.executor.execute(CMD_DOCKER_PS_ONE.format(id=container_id))
        except ExecutionError as e:
            logger.warning("Container refresh failed for %s: %s", container_id, e)
            return

        summaries = _parse_json_lines(raw)
        if not summaries:
            await self._remove(container_id)
            return

        summary = summaries[0]
        details = await self._inspect_many([summary.get("ID") or container_id])
        container = build_container(summary, _lookup(details, summary.get("ID")), self.fallback_host)
        if container is None:
            return

        async with self._lock:
            self._upsert(container)

    async def _remove(self, container_id: str) -> None:
        async with self._lock:
            match = self._find_id(container_id)
            if match is None:
                return
            self._index.pop(match, None)
            self._containers = [c for c in self._containers if c.id != match]
        logger.debug("Container %s removed from inventory", container_id)

    def _upsert(self, container: Container) -> None:
        existing = self._index.get(container.id)
        if existing is not None:
            self._containers = [container if c.id == container.id else c for c in self._containers]
        else:
            self._containers = self._containers + [container]
        self._index[container.id] = container

    def _find_id(self, container_id: str) -> Optional[str]:
        if container_id in self._index:
            return container_id
        for full_id in self._index:
            if full_id.startswith(container_id):
                return full_id
        return None

    async def _inspect_many(self, ids: List[str]) -> Dict[str, dict]:
        """``docker inspect`` for all ids at once, keyed by full and short id"""
        if not ids:
            return {}
        try:
            raw = await self.executor.execute(CMD_DOCKER_INSPECT.format(ids=" ".join(ids)))
            entries = json.loads(raw)
        except (ExecutionError, json.JSONDecodeError) as e:
            logger.warning("docker inspect failed for %d ids: %s", len(ids), e)
            return {}

        details: Dict[str, dict] = {}
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict) or not entry.get("Id"):
                continue
            details[entry["Id"]] = entry
            details[entry["Id"][:SHORT_ID_LENGTH]] = entry
        return details


def _parse_json_lines(raw: str) -> List[dict]:
    rows = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping unparsable docker ps line: %s", line[:120])
            continue
        if isinstance(row, dict):
            rows.append(row)
    return rows


def _lookup(details: Dict[str, dict], container_id: Optional[str]) -> Optional[dict]:
    if not container_id:
        return None
    return details.get(container_id) or details.get(container_id[:SHORT_ID_LENGTH])
