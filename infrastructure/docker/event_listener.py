"""
Docker event feed consumer.

Keeps the ContainerInventory current by mapping each container lifecycle
event to a per-id refresh or removal. The feed runs as a long-lived
``docker events`` process through the command executor and is restarted
after a fixed delay whenever it ends.
"""

import asyncio
import json
import logging
import re
from enum import Enum
from typing import Optional, Tuple

from domain.services.clock import Clock
from domain.services.command_execution_service import ICommandExecutor
from infrastructure.docker.container_inventory import ContainerInventory
from shared.constants import CMD_DOCKER_EVENTS, EVENT_LISTENER_RESTART_DELAY_SECONDS
from shared.logging.correlation import correlation_scope

logger = logging.getLogger(__name__)

REFRESH_ACTIONS = ("create", "start", "restart", "rename", "unpause", "pause", "die", "stop")
REMOVE_ACTIONS = ("destroy", "remove")

# Ids end up in shell commands
_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class EventAction(str, Enum):
    REFRESH = "refresh"
    REMOVE = "remove"
    IGNORE = "ignore"


def classify_event(event) -> Tuple[EventAction, Optional[str]]:
    """Decide what an event means for the inventory.

    Returns the action and the container id it applies to.
    """
    if not isinstance(event, dict):
        return EventAction.IGNORE, None

    event_type = event.get("Type")
    if event_type and event_type != "container":
        return EventAction.IGNORE, None

    actor = event.get("Actor") if isinstance(event.get("Actor"), dict) else {}
    container_id = event.get("id") or event.get("ID") or actor.get("ID")
    action = str(event.get("status") or event.get("Action") or "").lower()
    if not container_id or not action:
        return EventAction.IGNORE, None

    if any(keyword in action for keyword in REFRESH_ACTIONS):
        return EventAction.REFRESH, container_id
    if any(keyword in action for keyword in REMOVE_ACTIONS):
        return EventAction.REMOVE, container_id
    return EventAction.IGNORE, container_id


class DockerEventListener:
    """Background task that follows ``docker events``"""

    def __init__(
        self,
        executor: ICommandExecutor,
        inventory: ContainerInventory,
        clock: Optional[Clock] = None,
        restart_delay: float = EVENT_LISTENER_RESTART_DELAY_SECONDS,
    ):
        self.executor = executor
        self.inventory = inventory
        self.clock = clock or Clock()
        self.restart_delay = restart_delay
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        self.restarts = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run_forever(), name="docker-event-listener")
        logger.info("Docker event listener started on %s", self.executor.target)

    async def stop(self) -> None:
        self._stopping = True
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Docker event listener stopped")

    async def handle_line(self, line: str) -> EventAction:
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Ignoring non-JSON docker event line: %s", line[:120])
            return EventAction.IGNORE

        action, container_id = classify_event(event)
        if action is EventAction.IGNORE:
            return action
        if not _SAFE_ID.match(container_id):
            logger.warning("Ignoring docker event with unexpected container id %r", container_id)
            return EventAction.IGNORE

        logger.debug("Docker event %s -> %s %s", event.get("status") or event.get("Action"),
                     action.value, container_id)
        if action is EventAction.REMOVE:
            await self.inventory.remove(container_id)
        else:
            await self.inventory.refresh_one(container_id)
        return action

    async def run_once(self) -> None:
        """Follow one ``docker events`` process until it ends"""
        with correlation_scope("evt-"):
            async for line in self.executor.stream(CMD_DOCKER_EVENTS):
                await self.handle_line(line)

    async def _run_forever(self) -> None:
        while not self._stopping:
            try:
                await self.run_once()
                logger.warning("Docker event stream ended")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Docker event stream failed: %s", e)

            if self._stopping:
                break
            self.restarts += 1
            logger.info("Restarting docker event listener in %.1fs", self.restart_delay)
            await self.clock.sleep(self.restart_delay)
