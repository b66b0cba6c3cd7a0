"""Health check schemas."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field("ok", description="Overall health status")
    transport: str = Field("local", description="Command transport (local or ssh)")
    target: str = Field("localhost", description="Host the metrics are collected from")
    event_listener_running: bool = Field(False, description="Docker event feed is being followed")
    broadcaster_running: bool = Field(False, description="Push ticker is running")
    subscribers: int = Field(0, description="Active push subscribers")
    last_snapshot_at: Optional[str] = Field(None, description="Capture time of the latest snapshot")
    uptime_seconds: Optional[float] = Field(None, description="Service uptime in seconds")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
