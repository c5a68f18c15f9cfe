"""Base protocols and data classes for repository platforms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class TemplateCategory:
    """Named group of templates sharing the same target repositories."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class TemplateMetadata:
    """A template file inside a category of the master repository."""

    path: str
    checksum: str
    last_updated: datetime


@dataclass(frozen=True)
class RepositoryInfo:
    """A target repository receiving updates for a category."""

    org: str
    name: str
    default_branch: str

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.name}"


@dataclass
class TemplateChange:
    """A changed template to propagate.

    ``old_checksums`` is a historical record of earlier fingerprints; no
    decision logic depends on it.
    """

    path: str
    new_checksum: str
    content: bytes = field(repr=False)
    old_checksums: list[str] = field(default_factory=list)


@dataclass
class UpdateResult:
    """Outcome of one successful orchestration run."""

    pr_url: str
    pr_number: int
    updated_files: list[str] = field(default_factory=list)


@dataclass
class TreeEntry:
    """A file entry of a new git tree."""

    path: str
    sha: str
    mode: str = "100644"
    type: str = "blob"


@dataclass
class PullRequestInfo:
    """A pull request opened on a target repository."""

    number: int
    url: str


@runtime_checkable
class RepositoryPlatform(Protocol):
    """Protocol for hosted git platforms holding the master and target repositories."""

    platform: str

    async def list_categories(self) -> list[TemplateCategory]:
        """Return every category defined in the master configuration."""
        ...

    async def get_template(self, category: TemplateCategory, path: str) -> bytes:
        """Return template content. Raises TemplateNotFoundError if absent."""
        ...

    async def list_templates(self, category: TemplateCategory) -> list[TemplateMetadata]:
        """Return metadata for every template of a category."""
        ...

    async def list_repo_names(self, category: TemplateCategory) -> list[str]:
        """Return ``org/name`` of the repositories subscribed to a category."""
        ...

    async def get_repository(self, full_name: str) -> RepositoryInfo:
        """Look up one repository. Raises RepositoryNotFoundError if absent."""
        ...

    async def list_repos_by_category(self, category: TemplateCategory) -> list[RepositoryInfo]:
        """Return the repositories subscribed to a category."""
        ...

    async def get_updated_templates(
        self, category: TemplateCategory, since_commit: str
    ) -> list[TemplateChange]:
        """Return templates of a category changed since a master revision."""
        ...

    async def update_repo(
        self, repo: RepositoryInfo, changes: list[TemplateChange]
    ) -> UpdateResult:
        """Apply changes to a repository as a branch, a commit and a pull request."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class GitDataApi(Protocol):
    """Primitive git data operations an orchestration run is built from."""

    async def get_branch_head(self, repo: RepositoryInfo, branch: str) -> str:
        """Return the commit sha a branch points at."""
        ...

    async def create_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        """Create a branch ref pointing at sha."""
        ...

    async def get_commit_tree(self, repo: RepositoryInfo, commit_sha: str) -> str:
        """Return the tree sha of a commit."""
        ...

    async def create_blob(self, repo: RepositoryInfo, content: bytes) -> str:
        """Store raw content and return the blob sha."""
        ...

    async def create_tree(
        self, repo: RepositoryInfo, base_tree: str, entries: list[TreeEntry]
    ) -> str:
        """Create a tree on top of base_tree and return its sha."""
        ...

    async def create_commit(
        self, repo: RepositoryInfo, message: str, tree_sha: str, parents: list[str]
    ) -> str:
        """Create a commit and return its sha."""
        ...

    async def update_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        """Move a branch ref to sha without forcing."""
        ...

    async def create_pull_request(
        self, repo: RepositoryInfo, title: str, head: str, base: str, body: str
    ) -> PullRequestInfo:
        """Open a pull request from head into base."""
        ...
