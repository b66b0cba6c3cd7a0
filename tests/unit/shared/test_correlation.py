"""Tests for correlation ID module."""

import asyncio
import json
import logging

import pytest
from shared.logging.config import CorrelationIdFilter, CustomJsonFormatter
from shared.logging.correlation import (
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
    generate_correlation_id,
)


class TestCorrelationId:
    """Tests for correlation_id contextvars."""

    def test_default_is_none(self):
        """correlation_id is None by default."""
        set_correlation_id(None)
        assert get_correlation_id() is None

    def test_set_and_get(self):
        """Can set and retrieve correlation_id."""
        set_correlation_id("test-abc123")
        assert get_correlation_id() == "test-abc123"
        set_correlation_id(None)

    def test_generate_with_prefix(self):
        """generate_correlation_id produces {prefix}{8hex}."""
        cid = generate_correlation_id("snap-")
        assert cid.startswith("snap-")
        assert len(cid) == 13

    def test_generate_without_prefix(self):
        """generate_correlation_id without prefix produces 8 hex chars."""
        cid = generate_correlation_id()
        assert len(cid) == 8
        assert all(c in "0123456789abcdef" for c in cid)

    def test_generate_unique(self):
        """Each call generates a unique ID."""
        ids = {generate_correlation_id() for _ in range(100)}
        assert len(ids) == 100


class TestCorrelationScope:
    """Tests for correlation_scope()."""

    def test_scope_binds_and_restores(self):
        set_correlation_id("outer")
        with correlation_scope("evt-") as cid:
            assert cid.startswith("evt-")
            assert get_correlation_id() == cid
        assert get_correlation_id() == "outer"
        set_correlation_id(None)

    def test_scope_restores_after_exception(self):
        set_correlation_id(None)
        with pytest.raises(ValueError):
            with correlation_scope("api-"):
                raise ValueError("boom")
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_concurrent_tasks_keep_own_id(self):
        """Each asyncio task sees only its own id."""
        seen = {}

        async def work(name):
            with correlation_scope(f"{name}-") as cid:
                await asyncio.sleep(0)
                seen[name] = (cid, get_correlation_id())

        await asyncio.gather(work("a"), work("b"))

        for cid, observed in seen.values():
            assert cid == observed


class TestJsonFormatter:
    """Log records carry the correlation id."""

    def _format(self, record):
        CorrelationIdFilter().filter(record)
        formatter = CustomJsonFormatter(fmt='%(timestamp)s %(level)s %(logger)s %(message)s')
        return json.loads(formatter.format(record))

    def _record(self):
        return logging.LogRecord("companion.test", logging.INFO, __file__, 1, "hello", None, None)

    def test_correlation_id_included(self):
        with correlation_scope("snap-") as cid:
            payload = self._format(self._record())
        assert payload["correlation_id"] == cid
        assert payload["level"] == "INFO"
        assert payload["logger"] == "companion.test"
        assert payload["message"] == "hello"

    def test_correlation_id_omitted_outside_scope(self):
        set_correlation_id(None)
        payload = self._format(self._record())
        assert "correlation_id" not in payload
