"""State manager: single shared entry point to the persistence backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from teleporter.state.base import StatePersistence, TemplateState


class StateManager:
    """Delegates state operations to one backend instance.

    Create one manager per process and share it between callers; the
    backend's lock only serializes operations issued through that instance.
    """

    def __init__(self, backend: StatePersistence) -> None:
        self.backend = backend

    def __repr__(self) -> str:
        return f"StateManager(backend={type(self.backend).__name__})"

    async def get_state(self, template_id: str) -> TemplateState | None:
        """Return the stored state for template_id, or None."""
        return await self.backend.get_state(template_id)

    async def update_state(self, state: TemplateState) -> None:
        """Create or overwrite the stored state."""
        await self.backend.update_state(state)

    async def close(self) -> None:
        """Release backend resources."""
        await self.backend.close()
