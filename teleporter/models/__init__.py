"""SQLAlchemy ORM models for the template teleporter."""

from teleporter.models.base import Base
from teleporter.models.state import TemplateStateRecord

__all__ = [
    "Base",
    "TemplateStateRecord",
]
