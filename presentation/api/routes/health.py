"""Health check endpoint."""

import logging
import time

from fastapi import APIRouter

from presentation.api.dependencies import get_container
from presentation.api.schemas.system import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])

# Track startup time for uptime calculation
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the state of the background collectors. Never triggers a collection.",
)
async def health_check() -> HealthResponse:
    """Report transport and background task state."""
    container = get_container()
    settings = container.settings

    listener_running = container.event_listener().running
    broadcaster = container.broadcaster()
    latest = container.pull_service().cached_snapshot

    # The event feed is only expected when containers are shown
    expected_listener = settings.collector.show_containers
    overall = "ok" if broadcaster.running and (listener_running or not expected_listener) else "degraded"

    return HealthResponse(
        status=overall,
        transport=settings.collector.transport,
        target=container.executor().target,
        event_listener_running=listener_running,
        broadcaster_running=broadcaster.running,
        subscribers=broadcaster.subscriber_count,
        last_snapshot_at=latest.to_dict()["capturedAt"] if latest else None,
        uptime_seconds=round(time.time() - _start_time, 1),
    )
