"""Shared test fixtures for the template teleporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import pytest

from teleporter.config import Settings
from teleporter.platforms.base import PullRequestInfo, RepositoryInfo, TreeEntry
from teleporter.services.state_service import StateManager
from teleporter.services.updater_service import TemplateUpdater
from teleporter.state.base import TemplateState
from teleporter.state.filesystem import FilesystemBackend

if TYPE_CHECKING:
    from pathlib import Path

FIXED_NOW = datetime(2026, 2, 2, 22, 21, 29, 975359, tzinfo=timezone.utc)


def make_state(
    template_id: str = "python/ci.yml",
    checksum: str = "a" * 64,
    source: str = "acme/templates",
    last_updated: datetime = FIXED_NOW,
) -> TemplateState:
    return TemplateState(
        template_id=template_id,
        source_repository=source,
        current_checksum=checksum,
        last_updated=last_updated,
    )


class CountingBackend:
    """In-memory backend recording every write."""

    def __init__(self) -> None:
        self.records: dict[str, TemplateState] = {}
        self.writes: list[TemplateState] = []
        self.closed = False

    async def get_state(self, template_id: str) -> TemplateState | None:
        return self.records.get(template_id)

    async def update_state(self, state: TemplateState) -> None:
        self.writes.append(state)
        self.records[state.template_id] = state

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeGitDataApi:
    """Git data API fake that records each primitive call in order."""

    calls: list[str] = field(default_factory=list)
    fail_on: str | None = None
    error: Exception | None = None
    trees: list[tuple[str, list[TreeEntry]]] = field(default_factory=list)
    commits: list[tuple[str, str, list[str]]] = field(default_factory=list)
    pull_requests: list[dict[str, str]] = field(default_factory=list)
    branches: dict[str, str] = field(default_factory=dict)
    _blob_count: int = 0

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name == self.fail_on:
            assert self.error is not None
            raise self.error

    async def get_branch_head(self, repo: RepositoryInfo, branch: str) -> str:
        self._record("get_branch_head")
        return "head-sha"

    async def create_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        self._record("create_branch")
        self.branches[branch] = sha

    async def get_commit_tree(self, repo: RepositoryInfo, commit_sha: str) -> str:
        self._record("get_commit_tree")
        return "base-tree-sha"

    async def create_blob(self, repo: RepositoryInfo, content: bytes) -> str:
        self._record("create_blob")
        self._blob_count += 1
        return f"blob-{self._blob_count}"

    async def create_tree(
        self, repo: RepositoryInfo, base_tree: str, entries: list[TreeEntry]
    ) -> str:
        self._record("create_tree")
        self.trees.append((base_tree, entries))
        return "new-tree-sha"

    async def create_commit(
        self, repo: RepositoryInfo, message: str, tree_sha: str, parents: list[str]
    ) -> str:
        self._record("create_commit")
        self.commits.append((message, tree_sha, parents))
        return "new-commit-sha"

    async def update_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        self._record("update_branch")
        self.branches[branch] = sha

    async def create_pull_request(
        self, repo: RepositoryInfo, title: str, head: str, base: str, body: str
    ) -> PullRequestInfo:
        self._record("create_pull_request")
        self.pull_requests.append({"title": title, "head": head, "base": base, "body": body})
        return PullRequestInfo(
            number=7, url=f"https://github.com/{repo.full_name}/pull/7"
        )


@pytest.fixture
def repo() -> RepositoryInfo:
    return RepositoryInfo(org="acme", name="service-a", default_branch="main")


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def fs_backend(state_dir: Path) -> FilesystemBackend:
    return FilesystemBackend(state_dir)


@pytest.fixture
def counting_backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def updater(counting_backend: CountingBackend) -> TemplateUpdater:
    return TemplateUpdater(StateManager(counting_backend))


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with temporary paths and a fake GitHub target."""
    return Settings(
        _env_file=None,
        state_dir=tmp_path / "state",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'db' / 'state.db'}",
        github_token="test-token",
        master_repository="acme/templates",
    )
