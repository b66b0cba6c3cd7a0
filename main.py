#!/usr/bin/env python3
"""
Unraid Companion - host and workload metrics for an Unraid server

Samples CPU, memory, array usage, network throughput, Docker containers and
libvirt VMs from the local machine or over SSH, and serves them as:
- a pull endpoint (GET /api/v1/snapshot) with a minimum refresh interval
- a push stream (WS /api/v1/ws/snapshots) on a fixed tick
- optional Prometheus gauges

Architecture:
- Domain: Entities, rate math and collaborator interfaces
- Application: Snapshot assembly, pull cache, push broadcaster
- Infrastructure: Command executors, collectors, inventories
- Presentation: FastAPI HTTP / WebSocket interface
"""

import argparse
import asyncio
import json
import logging
import sys

import uvicorn

from domain.errors import ConfigurationError
from shared.config.settings import Settings
from shared.container import Container
from shared.logging.config import setup_logging

logger = logging.getLogger(__name__)


class Application:
    """Main application class"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.container: Container = None
        self.server: uvicorn.Server = None

    def setup(self):
        """Initialize application components"""
        logger.info("Initializing Unraid Companion...")
        self.settings.validate()
        self.container = Container(self.settings)

        executor = self.container.executor()
        if self.settings.collector.transport == "ssh" and not executor.check_client_available():
            raise ConfigurationError("ssh client is not installed")
        logger.info(f"✓ Transport: {self.settings.collector.transport} ({executor.target})")

    async def once(self) -> dict:
        """Collect one snapshot without starting background tasks"""
        self.setup()
        snapshot = await self.container.snapshot_assembler().get_snapshot(force=True)
        return snapshot.to_dict()

    async def start(self):
        """Start the API server; the app lifespan starts the background tasks"""
        self.setup()

        from presentation.api.app import create_app
        app = create_app(self.container)
        config = uvicorn.Config(
            app,
            host=self.settings.server.host,
            port=self.settings.server.port,
            log_config=None,
        )
        self.server = uvicorn.Server(config)

        logger.info(f"Serving on {self.settings.server.host}:{self.settings.server.port}")
        await self.server.serve()

    async def shutdown(self):
        """Ask the server to exit; the app lifespan stops the background tasks"""
        if self.server is None or self.server.should_exit:
            return

        logger.info("Shutting down...")
        self.server.should_exit = True


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="unraid-companion", description=__doc__.splitlines()[1])
    p.add_argument("--once", action="store_true", help="print a single snapshot as JSON and exit")
    p.add_argument("--host", help="override API_HOST")
    p.add_argument("--port", type=int, help="override API_PORT")
    p.add_argument("--log-level", help="override LOG_LEVEL")
    return p


async def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port
    if args.log_level:
        settings.log_level = args.log_level.upper()

    setup_logging(level="DEBUG" if settings.debug else settings.log_level, log_dir=settings.log_dir)
    app = Application(settings)

    try:
        if args.once:
            print(json.dumps(await app.once(), indent=2))
        else:
            await app.start()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        await app.shutdown()
    return 0


def run():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
