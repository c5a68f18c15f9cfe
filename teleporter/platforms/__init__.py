"""Repository platform capability and implementations."""

from teleporter.platforms.base import (
    RepositoryInfo,
    RepositoryPlatform,
    TemplateCategory,
    TemplateChange,
    TemplateMetadata,
    UpdateResult,
)

__all__ = [
    "RepositoryInfo",
    "RepositoryPlatform",
    "TemplateCategory",
    "TemplateChange",
    "TemplateMetadata",
    "UpdateResult",
]
