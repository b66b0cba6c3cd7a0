"""
HTTP / WebSocket front end for the snapshot service.

The app owns no state: everything comes from the shared Container, whose
background tasks (event listener, push ticker, metrics server) are tied to
the app lifespan.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from domain.errors import CompanionError
from shared.container import Container
from shared.logging.correlation import set_correlation_id, generate_correlation_id
from presentation.api.dependencies import set_container
from presentation.api.routes import health, snapshot_route, inventory_route, websocket_route

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
ROUTERS = (health.router, snapshot_route.router, inventory_route.router, websocket_route.router)


def create_app(container: Container) -> FastAPI:
    """
    Build the FastAPI app around ``container``.

    Entering the lifespan starts the container's background work; leaving it
    closes WebSocket clients and stops the tasks.
    """
    set_container(container)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.start()
        try:
            yield
        finally:
            await container.close()

    app = FastAPI(
        title="Unraid Companion API",
        description=(
            "Host and workload metrics for an Unraid server.\n\n"
            "**Pull:** `GET /api/v1/snapshot` serves a cached snapshot no older than the "
            "refresh interval. **Push:** `WS /api/v1/ws/snapshots` streams one snapshot per tick."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        # Callers may pass their own trace id through
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id("api-")
        set_correlation_id(cid)
        try:
            response: Response = await call_next(request)
        finally:
            set_correlation_id(None)
        response.headers["X-Correlation-ID"] = cid
        return response

    @app.exception_handler(CompanionError)
    async def companion_error_handler(request: Request, exc: CompanionError):
        logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    # Read-only API, dashboards may live on any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID"],
    )

    for router in ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    logger.info("API configured: %d routes under %s", len(app.routes), API_PREFIX)
    return app
