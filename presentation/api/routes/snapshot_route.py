"""Pull transport: the latest snapshot, at most one collection per refresh interval."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from presentation.api.dependencies import get_pull_service
from presentation.api.schemas.snapshot import SnapshotResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Snapshot"])


@router.get(
    "/snapshot",
    response_model=SnapshotResponse,
    summary="Current snapshot",
    description="Returns the cached snapshot while it is younger than the refresh "
    "interval, otherwise assembles a new one. `force=true` always assembles.",
)
async def get_snapshot(
    force: bool = Query(False, description="Bypass the refresh-interval cache"),
    pull_service=Depends(get_pull_service),
) -> JSONResponse:
    try:
        snapshot = await pull_service.get_snapshot(force=force)
    except Exception as e:
        logger.error("Snapshot request failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Snapshot unavailable: {e}",
        )
    # Same document the push stream sends; the schema only documents it
    return JSONResponse({
        "snapshot": snapshot.to_dict(),
        "cached": pull_service.last_was_cached,
    })
