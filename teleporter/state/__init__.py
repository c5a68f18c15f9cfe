"""Template state persistence backends."""

from teleporter.state.base import StatePersistence, TemplateState
from teleporter.state.database import DatabaseBackend
from teleporter.state.filesystem import FilesystemBackend, sanitize_template_id

__all__ = [
    "DatabaseBackend",
    "FilesystemBackend",
    "StatePersistence",
    "TemplateState",
    "sanitize_template_id",
]
