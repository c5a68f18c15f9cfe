"""State backend storing template state rows in a SQL database."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import MetaData, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from teleporter.exceptions import ConfigurationError, StateDeserializationError, StateStoreIOError
from teleporter.models.state import TemplateStateRecord
from teleporter.services.datetime_service import format_iso
from teleporter.state.base import TemplateState

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class DatabaseBackend:
    """Stores ``TemplateState`` records in a table of an async SQLAlchemy engine.

    The table layout comes from ``TemplateStateRecord``; its name is
    configurable so several deployments can share one database.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        table_name: str = TemplateStateRecord.__tablename__,
    ) -> None:
        if not table_name.strip():
            msg = "State table name cannot be empty"
            raise ConfigurationError(msg)
        self._engine = engine
        self.table: Table = TemplateStateRecord.__table__.to_metadata(MetaData(), name=table_name)
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the state table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(self.table.metadata.create_all)
        except SQLAlchemyError as exc:
            msg = f"Failed to create state table {self.table.name}: {exc}"
            raise StateStoreIOError(msg) from exc

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()

    async def get_state(self, template_id: str) -> TemplateState | None:
        """Return the stored row for template_id, or None."""
        stmt = select(self.table).where(self.table.c.template_id == template_id)
        async with self._lock:
            try:
                async with self._engine.connect() as conn:
                    row = (await conn.execute(stmt)).mappings().one_or_none()
            except SQLAlchemyError as exc:
                msg = f"Failed to read state for {template_id}: {exc}"
                raise StateStoreIOError(msg) from exc

        if row is None:
            return None
        try:
            return TemplateState.model_validate(
                {
                    "template_id": row["template_id"],
                    "source_repository": row["source_repository"],
                    "current_checksum": row["current_checksum"],
                    "last_updated": row["last_updated_utc"],
                }
            )
        except ValidationError as exc:
            msg = f"Failed to deserialize state for {template_id}: {exc}"
            raise StateDeserializationError(msg) from exc

    async def update_state(self, state: TemplateState) -> None:
        """Insert or overwrite the row for ``state.template_id`` in one transaction."""
        values = {
            "source_repository": state.source_repository,
            "current_checksum": state.current_checksum,
            "last_updated_utc": format_iso(state.last_updated),
        }
        async with self._lock:
            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        update(self.table)
                        .where(self.table.c.template_id == state.template_id)
                        .values(**values)
                    )
                    if result.rowcount == 0:
                        await conn.execute(
                            insert(self.table).values(template_id=state.template_id, **values)
                        )
            except SQLAlchemyError as exc:
                msg = f"Failed to write state for {state.template_id}: {exc}"
                raise StateStoreIOError(msg) from exc
        logger.debug("Stored state for %s in table %s", state.template_id, self.table.name)
