"""Pydantic v2 response schemas for REST API."""

from presentation.api.schemas.system import HealthResponse
from presentation.api.schemas.snapshot import (
    SnapshotSchema,
    SnapshotResponse,
    ContainerSchema,
    ContainerListResponse,
    VmSchema,
    VmListResponse,
)
