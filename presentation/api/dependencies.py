"""FastAPI dependency injection: bridges the DI container to Depends()."""

import logging
from typing import Optional

from shared.config.settings import Settings
from shared.container import Container

logger = logging.getLogger(__name__)

# Set once by create_app()
_container: Optional[Container] = None


def set_container(container: Container) -> None:
    global _container
    _container = container
    logger.debug("API bound to container (transport=%s)", container.settings.collector.transport)


def get_container() -> Container:
    if _container is None:
        raise RuntimeError("DI container not initialized. Call set_container() first.")
    return _container


def get_pull_service():
    return get_container().pull_service()


def get_container_inventory():
    return get_container().container_inventory()


def get_vm_inventory():
    return get_container().vm_inventory()


def get_settings() -> Settings:
    return get_container().settings
