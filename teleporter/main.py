"""Process setup: logging and construction of the long-lived services."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from teleporter.platforms.registry import create_platform
from teleporter.services.state_service import StateManager
from teleporter.services.updater_service import TemplateUpdater
from teleporter.state.registry import create_backend

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from teleporter.config import Settings
    from teleporter.platforms.base import RepositoryPlatform

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure process logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)


@asynccontextmanager
async def open_updater(settings: Settings) -> AsyncGenerator[TemplateUpdater]:
    """Yield an updater over one shared state manager, closing the backend afterwards."""
    backend = await create_backend(settings)
    state_manager = StateManager(backend)
    logger.debug("Using %r", state_manager)
    try:
        yield TemplateUpdater(state_manager)
    finally:
        await state_manager.close()


@asynccontextmanager
async def open_platform(settings: Settings) -> AsyncGenerator[RepositoryPlatform]:
    """Yield the configured repository platform, closing it afterwards."""
    platform = create_platform(settings)
    try:
        yield platform
    finally:
        await platform.close()
