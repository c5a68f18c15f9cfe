"""Backend registry for template state persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from teleporter.database import create_engine
from teleporter.exceptions import ConfigurationError
from teleporter.state.database import DatabaseBackend
from teleporter.state.filesystem import FilesystemBackend

if TYPE_CHECKING:
    from teleporter.config import Settings
    from teleporter.state.base import StatePersistence

BACKENDS: dict[str, type[FilesystemBackend] | type[DatabaseBackend]] = {
    "filesystem": FilesystemBackend,
    "database": DatabaseBackend,
}


async def create_backend(settings: Settings) -> StatePersistence:
    """Create and initialize the state backend named by ``settings.state_backend``.

    Raises ConfigurationError if the backend name is unknown.
    """
    name = settings.state_backend
    if name not in BACKENDS:
        msg = f"Unknown state backend: {name!r}. Available: {list(BACKENDS)}"
        raise ConfigurationError(msg)

    if name == "database":
        backend = DatabaseBackend(create_engine(settings), settings.state_table_name)
        await backend.initialize()
        return backend
    return FilesystemBackend(settings.state_dir)


def list_backends() -> list[str]:
    """Return the list of supported backend names."""
    return list(BACKENDS.keys())
