"""
Correlation ID context for tracing a unit of work through the logs.

Uses contextvars so the id follows the asyncio task that set it. Each
snapshot cycle (``snap-``), event-listener run (``evt-``) and HTTP request
(``api-``) gets its own id; every log line produced while handling it
carries that id.

Usage:
    from shared.logging.correlation import correlation_scope

    with correlation_scope("snap-"):
        ...
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Propagated automatically through asyncio tasks
_correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Get current correlation_id (or None if not set)."""
    return _correlation_id_var.get()


def set_correlation_id(cid: Optional[str]) -> None:
    """Set correlation_id for the current async context."""
    _correlation_id_var.set(cid)


def generate_correlation_id(prefix: str = "") -> str:
    """
    Generate a new correlation_id.

    Format: {prefix}{short_uuid}
    Example: snap-a1b2c3d4, api-e5f6g7h8
    """
    short = uuid.uuid4().hex[:8]
    return f"{prefix}{short}" if prefix else short


@contextmanager
def correlation_scope(prefix: str = "") -> Iterator[str]:
    """Bind a fresh correlation_id for the duration of the block."""
    cid = generate_correlation_id(prefix)
    token = _correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        _correlation_id_var.reset(token)
