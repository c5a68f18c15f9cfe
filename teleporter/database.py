"""Database engine management."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from teleporter.config import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine backing the database state backend.

    For file-based SQLite URLs the parent directory is created first.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        db_dir = Path(url.database).parent
        if not db_dir.exists():
            logger.info("Creating database directory at %s", db_dir)
            db_dir.mkdir(parents=True, exist_ok=True)
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
    )
