"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from teleporter.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Template teleporter settings."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False

    # State persistence
    state_backend: str = "filesystem"
    state_dir: Path = Path("./.teleporter/state")
    database_url: str = "sqlite+aiosqlite:///.teleporter/state.db"
    state_table_name: str = "template_state"

    # Repository platform
    platform: str = "github"
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    master_repository: str = ""
    master_branch: str = "main"
    master_config_path: str = "template-teleporter.toml"
    http_timeout: float = Field(default=30.0, gt=0)

    @property
    def master_owner(self) -> str:
        """Owner part of ``master_repository``."""
        return self.master_repository.partition("/")[0]

    @property
    def master_name(self) -> str:
        """Name part of ``master_repository``."""
        return self.master_repository.partition("/")[2]

    def validate_runtime(self, *, require_platform: bool = True) -> None:
        """Validate the settings a run depends on.

        Raises ConfigurationError listing every violation found.
        """
        violations: list[str] = []
        if not self.state_table_name.strip():
            violations.append("STATE_TABLE_NAME cannot be empty")
        if require_platform:
            if not self.github_token:
                violations.append("GITHUB_TOKEN must be set")
            owner, _, name = self.master_repository.partition("/")
            if not owner or not name or "/" in name:
                violations.append("MASTER_REPOSITORY must have the form 'owner/name'")
            if not self.master_branch:
                violations.append("MASTER_BRANCH cannot be empty")

        if violations:
            joined = "; ".join(violations)
            raise ConfigurationError(f"Invalid configuration: {joined}")


def load_settings(**overrides: Any) -> Settings:
    """Build Settings, reporting invalid values as ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        msg = f"Invalid configuration: {problems}"
        raise ConfigurationError(msg) from exc
