"""Platform registry for repository platforms."""

from __future__ import annotations

from typing import TYPE_CHECKING

from teleporter.exceptions import ConfigurationError
from teleporter.platforms.github import GitHubClient, GitHubConfig

if TYPE_CHECKING:
    from teleporter.config import Settings
    from teleporter.platforms.base import RepositoryPlatform

PLATFORMS: dict[str, type[GitHubClient]] = {
    "github": GitHubClient,
}


def create_platform(settings: Settings) -> RepositoryPlatform:
    """Create the repository platform named by ``settings.platform``.

    Raises ConfigurationError if the platform is unknown.
    """
    platform_cls = PLATFORMS.get(settings.platform)
    if platform_cls is None:
        msg = f"Unknown platform: {settings.platform!r}. Available: {list(PLATFORMS)}"
        raise ConfigurationError(msg)
    return platform_cls(GitHubConfig.from_settings(settings))


def list_platforms() -> list[str]:
    """Return the list of supported platform names."""
    return list(PLATFORMS.keys())
