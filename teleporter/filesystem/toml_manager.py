"""TOML reader/writer for the master repository's template-teleporter.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import tomli_w

from teleporter.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

MASTER_CONFIG_FILE = "template-teleporter.toml"


@dataclass
class CategoryConfig:
    """A template category and the files it propagates."""

    name: str
    files: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class RepositoryTarget:
    """A target repository subscribed to one category."""

    full_name: str
    category: str

    def split_name(self) -> tuple[str, str] | None:
        """Return (org, name), or None if full_name is not ``org/name``."""
        parts = self.full_name.split("/")
        if len(parts) != 2 or not all(parts):
            return None
        return parts[0], parts[1]


@dataclass
class MasterConfig:
    """Parsed master configuration."""

    categories: dict[str, CategoryConfig] = field(default_factory=dict)
    repositories: dict[str, RepositoryTarget] = field(default_factory=dict)

    def repositories_for(self, category: str) -> list[RepositoryTarget]:
        """Return targets subscribed to category, sorted by full name."""
        return sorted(
            (target for target in self.repositories.values() if target.category == category),
            key=lambda target: target.full_name,
        )


def parse_master_config(text: str) -> MasterConfig:
    """Parse the master configuration document.

    Raises ConfigurationError for invalid TOML or malformed entries.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Failed to parse {MASTER_CONFIG_FILE}: {exc}"
        raise ConfigurationError(msg) from exc

    categories: dict[str, CategoryConfig] = {}
    categories_data: dict[str, Any] = data.get("categories", {})
    for name, category_data in categories_data.items():
        files = category_data.get("files") if isinstance(category_data, dict) else None
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            msg = f"Category {name!r} must define 'files' as a list of paths"
            raise ConfigurationError(msg)
        categories[name] = CategoryConfig(
            name=name,
            files=files,
            description=str(category_data.get("description") or ""),
        )

    repositories: dict[str, RepositoryTarget] = {}
    repositories_data: dict[str, Any] = data.get("repositories", {})
    for full_name, repo_data in repositories_data.items():
        category = repo_data.get("category") if isinstance(repo_data, dict) else None
        if not isinstance(category, str) or not category:
            msg = f"Repository {full_name!r} must define a 'category'"
            raise ConfigurationError(msg)
        repositories[full_name] = RepositoryTarget(full_name=full_name, category=category)

    return MasterConfig(categories=categories, repositories=repositories)


def load_master_config(path: Path) -> MasterConfig:
    """Read and parse a master configuration file from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read master configuration {path}: {exc}"
        raise ConfigurationError(msg) from exc
    return parse_master_config(text)


def dump_master_config(config: MasterConfig) -> str:
    """Serialize a master configuration back to TOML."""
    categories_data: dict[str, Any] = {}
    for name, category in config.categories.items():
        entry: dict[str, Any] = {"files": category.files}
        if category.description:
            entry["description"] = category.description
        categories_data[name] = entry

    repositories_data = {
        full_name: {"category": target.category}
        for full_name, target in config.repositories.items()
    }
    return tomli_w.dumps({"categories": categories_data, "repositories": repositories_data})


def write_master_config(path: Path, config: MasterConfig) -> None:
    """Write a master configuration file."""
    path.write_bytes(dump_master_config(config).encode("utf-8"))


def find_config_problems(config: MasterConfig) -> list[str]:
    """Return human-readable problems that make entries unusable for a sync run."""
    problems: list[str] = []
    for name, category in sorted(config.categories.items()):
        if not category.files:
            problems.append(f"Category {name!r} lists no files")
    for full_name, target in sorted(config.repositories.items()):
        if target.split_name() is None:
            problems.append(f"Repository {full_name!r} is not of the form 'org/name'")
        if target.category not in config.categories:
            problems.append(
                f"Repository {full_name!r} subscribes to undefined category {target.category!r}"
            )
    return problems
