"""Template state record and the persistence protocol backends implement."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationError

from teleporter.exceptions import StateDeserializationError


class TemplateState(BaseModel):
    """Persisted state of a managed template.

    ``current_checksum`` is the fingerprint of the content whose update was
    last recorded. Serialized with camelCase keys so records stay readable
    by other tooling sharing the same state directory or table.
    """

    model_config = ConfigDict(populate_by_name=True)

    template_id: str = Field(alias="templateId", min_length=1)
    source_repository: str = Field(alias="sourceRepository")
    current_checksum: str = Field(alias="currentChecksum")
    last_updated: AwareDatetime = Field(alias="lastUpdatedUtc")

    def to_json(self) -> str:
        """Serialize to the on-disk JSON representation."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, raw: str | bytes, *, template_id: str = "") -> TemplateState:
        """Parse the on-disk JSON representation.

        Raises StateDeserializationError for malformed JSON or missing fields.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            label = template_id or "<unknown>"
            msg = f"Failed to deserialize state for {label}: {exc}"
            raise StateDeserializationError(msg) from exc


@runtime_checkable
class StatePersistence(Protocol):
    """Protocol for template state storage backends.

    ``get_state`` returns None for unknown templates and never raises for a
    missing record. ``update_state`` creates or overwrites the record keyed by
    ``state.template_id``.
    """

    async def get_state(self, template_id: str) -> TemplateState | None:
        """Return the stored state for template_id, if any."""
        ...

    async def update_state(self, state: TemplateState) -> None:
        """Create or overwrite the stored state."""
        ...

    async def close(self) -> None:
        """Release any resources held by the backend."""
        ...
