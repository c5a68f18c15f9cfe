"""Template state model."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from teleporter.models.base import Base


class TemplateStateRecord(Base):
    """Last synchronized checksum of a template."""

    __tablename__ = "template_state"

    template_id: Mapped[str] = mapped_column(Text, primary_key=True)
    source_repository: Mapped[str] = mapped_column(Text, nullable=False)
    current_checksum: Mapped[str] = mapped_column(Text, nullable=False)
    last_updated_utc: Mapped[str] = mapped_column(Text, nullable=False)
