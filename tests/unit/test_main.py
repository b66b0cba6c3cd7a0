"""Unit tests for the Application lifecycle in main."""

from unittest.mock import MagicMock

import pytest

from main import Application
from shared.config.settings import (
    CollectorConfig,
    MonitoringConfig,
    SSHConfig,
    ServerConfig,
    Settings,
)


@pytest.fixture
def application():
    settings = Settings(
        ssh=SSHConfig(),
        collector=CollectorConfig(),
        server=ServerConfig(),
        monitoring=MonitoringConfig(),
        log_dir=None,
    )
    return Application(settings)


class TestShutdown:
    """Tests for Application.shutdown()."""

    @pytest.mark.asyncio
    async def test_without_server_is_noop(self, application):
        await application.shutdown()
        assert application.server is None

    @pytest.mark.asyncio
    async def test_asks_server_to_exit(self, application):
        application.server = MagicMock(should_exit=False)

        await application.shutdown()
        await application.shutdown()

        assert application.server.should_exit is True
