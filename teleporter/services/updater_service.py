"""Updater service: checksum comparison and state reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from teleporter.services.checksum_service import calculate_checksum
from teleporter.services.datetime_service import now_utc
from teleporter.state.base import TemplateState

if TYPE_CHECKING:
    from teleporter.services.state_service import StateManager

logger = logging.getLogger(__name__)


@dataclass
class UpdateCheck:
    """Outcome of comparing new content against the stored state."""

    template_id: str
    new_checksum: str
    current: TemplateState | None

    @property
    def needs_update(self) -> bool:
        """True for unknown templates and for content whose checksum changed."""
        return self.current is None or self.current.current_checksum != self.new_checksum

    @property
    def previous_checksum(self) -> str | None:
        """Checksum recorded by the last update, if any."""
        return self.current.current_checksum if self.current is not None else None


class TemplateUpdater:
    """Decides whether a template changed and records its new state.

    It never talks to a repository platform. The sync service composes
    propagation on top of ``check`` and ``record``.
    """

    def __init__(self, state_manager: StateManager) -> None:
        self.state_manager = state_manager

    async def check(self, template_id: str, new_template_data: bytes) -> UpdateCheck:
        """Compare new content with the stored state without writing anything."""
        new_checksum = calculate_checksum(new_template_data)
        current = await self.state_manager.get_state(template_id)
        result = UpdateCheck(template_id=template_id, new_checksum=new_checksum, current=current)
        logger.debug(
            "Template %s: new checksum %s, stored checksum %s",
            template_id,
            new_checksum,
            result.previous_checksum,
        )
        return result

    async def record(self, check: UpdateCheck, source_repository: str) -> TemplateState:
        """Persist the checksum of a prior check as the template's current state."""
        state = TemplateState(
            template_id=check.template_id,
            source_repository=source_repository,
            current_checksum=check.new_checksum,
            last_updated=now_utc(),
        )
        await self.state_manager.update_state(state)
        return state

    async def process_update(
        self,
        template_id: str,
        source_repository: str,
        new_template_data: bytes,
    ) -> bool:
        """Record new content for a template if its checksum changed.

        Returns True when a new state was written and False when the stored
        checksum already matched. State backend errors propagate unchanged.
        """
        result = await self.check(template_id, new_template_data)
        if not result.needs_update:
            logger.info("No change detected for template %s", template_id)
            return False

        if result.current is None:
            logger.info("New template %s, recording checksum %s", template_id, result.new_checksum)
        else:
            logger.info(
                "Template %s changed: %s -> %s",
                template_id,
                result.previous_checksum,
                result.new_checksum,
            )
        await self.record(result, source_repository)
        return True
