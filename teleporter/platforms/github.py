"""GitHub repository platform using the GitHub REST API."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from teleporter.exceptions import (
    ApiError,
    AuthenticationError,
    CategoryNotFoundError,
    ConfigurationError,
    InvalidContentError,
    RateLimitExceededError,
    RepositoryNotFoundError,
    TemplateNotFoundError,
)
from teleporter.filesystem.toml_manager import MASTER_CONFIG_FILE, parse_master_config
from teleporter.platforms.base import (
    PullRequestInfo,
    RepositoryInfo,
    TemplateCategory,
    TemplateChange,
    TemplateMetadata,
)
from teleporter.platforms.orchestrator import UpdateOrchestrator
from teleporter.services.checksum_service import calculate_checksum
from teleporter.services.datetime_service import now_utc, parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from teleporter.config import Settings
    from teleporter.exceptions import TeleporterError
    from teleporter.filesystem.toml_manager import MasterConfig
    from teleporter.platforms.base import TreeEntry, UpdateResult

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
TEMPLATES_ROOT = "templates"
_CHANGED_STATUSES = frozenset({"added", "modified", "renamed"})
# The compare API lists at most this many changed files.
COMPARE_FILES_LIMIT = 300


@dataclass
class GitHubConfig:
    """Connection settings for the GitHub platform."""

    token: str
    master_owner: str
    master_name: str
    master_branch: str = "main"
    master_config_path: str = MASTER_CONFIG_FILE
    api_url: str = GITHUB_API_URL
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> GitHubConfig:
        return cls(
            token=settings.github_token,
            master_owner=settings.master_owner,
            master_name=settings.master_name,
            master_branch=settings.master_branch,
            master_config_path=settings.master_config_path,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
        )


def _error_message(resp: httpx.Response) -> str:
    """Extract GitHub's error message from a response, falling back to the raw text."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text


def _raise_for_status(
    resp: httpx.Response,
    action: str,
    not_found: Callable[[], TeleporterError] | None = None,
) -> None:
    """Map an error response to the matching platform error."""
    status = resp.status_code
    if status < 400:
        return
    primary_limit = resp.headers.get("x-ratelimit-remaining") == "0"
    secondary_limit = "retry-after" in resp.headers
    if status == 429 or (status == 403 and (primary_limit or secondary_limit)):
        if secondary_limit:
            wait = f"retry after {resp.headers['retry-after']}s"
        else:
            wait = f"reset {resp.headers.get('x-ratelimit-reset', 'unknown')}"
        msg = f"API rate limit exceeded while trying to {action} ({wait})"
        raise RateLimitExceededError(msg)
    if status in (401, 403):
        msg = f"Failed to {action}: {status} {_error_message(resp)}"
        raise AuthenticationError(msg)
    if status == 404 and not_found is not None:
        raise not_found()
    msg = f"Failed to {action}: {status} {_error_message(resp)}"
    raise ApiError(msg)


def _dig(payload: Any, *keys: str) -> Any:
    """Follow keys into a JSON payload, raising ApiError on an unexpected shape."""
    value = payload
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            msg = f"Unexpected GitHub response: missing {'.'.join(keys)}"
            raise ApiError(msg)
        value = value[key]
    return value


def decode_content(payload: Any, path: str) -> bytes:
    """Decode the base64 body of a contents or blob API response.

    Files over 1 MB come back from the contents API with encoding ``none`` and
    no content; those are rejected here and must be fetched as blobs.
    """
    if not isinstance(payload, dict) or payload.get("type", "file") != "file":
        msg = f"Path {path!r} is not a file"
        raise InvalidContentError(msg)
    content = payload.get("content")
    if content is None:
        msg = f"Content is empty or not available for {path!r}"
        raise InvalidContentError(msg)
    encoding = payload.get("encoding")
    if encoding != "base64":
        msg = f"Unsupported encoding {encoding!r} for {path!r}, expected base64"
        raise InvalidContentError(msg)
    try:
        return base64.b64decode(str(content).replace("\n", ""), validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = f"Failed to decode base64 content for {path!r}: {exc}"
        raise InvalidContentError(msg) from exc


class GitHubClient:
    """Repository platform backed by GitHub.

    Reads the master configuration and templates from the master repository
    and applies updates to target repositories through the git data API.
    """

    platform: str = "github"

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=config.timeout,
            transport=transport,
        )
        self._master_config: MasterConfig | None = None
        self.orchestrator = UpdateOrchestrator(self)

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        action: str,
        not_found: Callable[[], TeleporterError] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return its decoded JSON body."""
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("GitHub HTTP error while trying to %s", action)
            msg = f"Failed to {action}: {exc}"
            raise ApiError(msg) from exc

        _raise_for_status(resp, action, not_found)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            msg = f"Failed to {action}: response is not JSON"
            raise ApiError(msg) from exc

    @property
    def _master_path(self) -> str:
        return f"/repos/{self.config.master_owner}/{self.config.master_name}"

    @staticmethod
    def _repo_path(repo: RepositoryInfo) -> str:
        return f"/repos/{repo.org}/{repo.name}"

    async def _get_master_file(
        self, path: str, not_found: Callable[[], TeleporterError]
    ) -> bytes:
        payload = await self._request(
            "GET",
            f"{self._master_path}/contents/{quote(path)}",
            action=f"fetch {path} from the master repository",
            not_found=not_found,
            params={"ref": self.config.master_branch},
        )
        if isinstance(payload, dict) and payload.get("encoding") == "none" and payload.get("sha"):
            logger.debug("%s is too large for the contents API, fetching blob", path)
            payload = await self._request(
                "GET",
                f"{self._master_path}/git/blobs/{payload['sha']}",
                action=f"fetch blob of {path} from the master repository",
                not_found=not_found,
            )
        return decode_content(payload, path)

    async def get_master_config(self) -> MasterConfig:
        """Fetch and parse the master configuration, caching it for the client's lifetime."""
        if self._master_config is not None:
            return self._master_config

        config_path = self.config.master_config_path
        logger.debug(
            "Fetching master config %s from %s/%s",
            config_path,
            self.config.master_owner,
            self.config.master_name,
        )

        def _missing() -> ConfigurationError:
            return ConfigurationError(f"{config_path} not found in master repository")

        raw = await self._get_master_file(config_path, not_found=_missing)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"{config_path} content is not valid UTF-8: {exc}"
            raise InvalidContentError(msg) from exc
        self._master_config = parse_master_config(text)
        return self._master_config

    async def list_categories(self) -> list[TemplateCategory]:
        """Return every category defined in the master configuration."""
        master_config = await self.get_master_config()
        return [TemplateCategory(name) for name in sorted(master_config.categories)]

    async def get_template(self, category: TemplateCategory, path: str) -> bytes:
        """Fetch a template from ``templates/<category>/<path>`` in the master repository."""
        full_path = f"{TEMPLATES_ROOT}/{category.name}/{path}"
        content = await self._get_master_file(
            full_path, not_found=lambda: TemplateNotFoundError(path)
        )
        logger.debug("Fetched template %s (%d bytes)", full_path, len(content))
        return content

    async def _last_commit_date(self, full_path: str) -> datetime:
        commits = await self._request(
            "GET",
            f"{self._master_path}/commits",
            action=f"list commits touching {full_path}",
            params={"path": full_path, "sha": self.config.master_branch, "per_page": 1},
        )
        if not commits:
            logger.warning("No commits found for %s, using current time", full_path)
            return now_utc()
        date = _dig(commits[0], "commit", "committer", "date")
        try:
            return parse_timestamp(str(date))
        except ValueError as exc:
            msg = f"Unexpected commit date for {full_path}: {date!r}"
            raise ApiError(msg) from exc

    async def list_templates(self, category: TemplateCategory) -> list[TemplateMetadata]:
        """Return path, checksum and last commit date of each template in a category."""
        master_config = await self.get_master_config()
        category_config = master_config.categories.get(category.name)
        if category_config is None:
            raise CategoryNotFoundError(category.name)

        metadata: list[TemplateMetadata] = []
        for path in category_config.files:
            content = await self.get_template(category, path)
            full_path = f"{TEMPLATES_ROOT}/{category.name}/{path}"
            last_updated = await self._last_commit_date(full_path)
            metadata.append(
                TemplateMetadata(
                    path=path,
                    checksum=calculate_checksum(content),
                    last_updated=last_updated,
                )
            )
        logger.info("Found %d templates in category %s", len(metadata), category.name)
        return metadata

    async def list_repo_names(self, category: TemplateCategory) -> list[str]:
        """Return ``org/name`` of every well-formed repository subscribed to a category."""
        master_config = await self.get_master_config()
        if category.name not in master_config.categories:
            raise CategoryNotFoundError(category.name)

        names: list[str] = []
        for target in master_config.repositories_for(category.name):
            if target.split_name() is None:
                logger.warning("Invalid repository name in master config: %s", target.full_name)
                continue
            names.append(target.full_name)
        return names

    async def get_repository(self, full_name: str) -> RepositoryInfo:
        """Look up a repository and its actual default branch."""
        org, _, name = full_name.partition("/")
        payload = await self._request(
            "GET",
            f"/repos/{org}/{name}",
            action=f"fetch repository {full_name}",
            not_found=lambda: RepositoryNotFoundError(org, name),
        )
        return RepositoryInfo(org=org, name=name, default_branch=_dig(payload, "default_branch"))

    async def list_repos_by_category(self, category: TemplateCategory) -> list[RepositoryInfo]:
        """Return subscribed repositories with their actual default branches.

        Fails on the first repository that cannot be looked up; ``run_sync``
        resolves repositories one at a time instead.
        """
        return [
            await self.get_repository(full_name)
            for full_name in await self.list_repo_names(category)
        ]

    async def get_updated_templates(
        self, category: TemplateCategory, since_commit: str
    ) -> list[TemplateChange]:
        """Compare ``since_commit`` with the master branch and collect changed templates."""
        branch = self.config.master_branch
        comparison = await self._request(
            "GET",
            f"{self._master_path}/compare/{quote(since_commit)}...{quote(branch)}",
            action=f"compare {since_commit}...{branch}",
            not_found=lambda: ApiError(f"Revision {since_commit} not found in master repository"),
        )

        files = comparison.get("files") or []
        if len(files) >= COMPARE_FILES_LIMIT:
            logger.warning(
                "Comparison %s...%s lists %d files, the API maximum; later changes may be "
                "missing. Sync from a more recent revision to pick them up.",
                since_commit,
                branch,
                len(files),
            )

        prefix = f"{TEMPLATES_ROOT}/{category.name}/"
        changes: list[TemplateChange] = []
        for file in files:
            filename = str(file.get("filename", ""))
            if not filename.startswith(prefix):
                continue
            status = file.get("status")
            relative_path = filename.removeprefix(prefix)
            if status == "removed":
                logger.warning("Template %s was removed; removals are not propagated", filename)
                continue
            if status not in _CHANGED_STATUSES:
                continue

            try:
                content = await self.get_template(category, relative_path)
            except TemplateNotFoundError:
                logger.warning("Changed template %s no longer exists, skipping", filename)
                continue
            changes.append(
                TemplateChange(
                    path=relative_path,
                    new_checksum=calculate_checksum(content),
                    content=content,
                )
            )

        logger.info(
            "Found %d updated templates for category %s since %s",
            len(changes),
            category.name,
            since_commit,
        )
        return changes

    async def update_repo(
        self, repo: RepositoryInfo, changes: list[TemplateChange]
    ) -> UpdateResult:
        """Open a pull request applying changes to repo."""
        return await self.orchestrator.run(repo, changes)

    # Git data primitives used by UpdateOrchestrator.

    async def get_branch_head(self, repo: RepositoryInfo, branch: str) -> str:
        payload = await self._request(
            "GET",
            f"{self._repo_path(repo)}/git/ref/heads/{quote(branch)}",
            action=f"get ref heads/{branch} of {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
        )
        return _dig(payload, "object", "sha")

    async def create_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        await self._request(
            "POST",
            f"{self._repo_path(repo)}/git/refs",
            action=f"create branch {branch} in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    async def get_commit_tree(self, repo: RepositoryInfo, commit_sha: str) -> str:
        payload = await self._request(
            "GET",
            f"{self._repo_path(repo)}/git/commits/{commit_sha}",
            action=f"get commit {commit_sha} of {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
        )
        return _dig(payload, "tree", "sha")

    async def create_blob(self, repo: RepositoryInfo, content: bytes) -> str:
        payload = await self._request(
            "POST",
            f"{self._repo_path(repo)}/git/blobs",
            action=f"create blob in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )
        return _dig(payload, "sha")

    async def create_tree(
        self, repo: RepositoryInfo, base_tree: str, entries: list[TreeEntry]
    ) -> str:
        payload = await self._request(
            "POST",
            f"{self._repo_path(repo)}/git/trees",
            action=f"create tree in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"base_tree": base_tree, "tree": [asdict(entry) for entry in entries]},
        )
        return _dig(payload, "sha")

    async def create_commit(
        self, repo: RepositoryInfo, message: str, tree_sha: str, parents: list[str]
    ) -> str:
        payload = await self._request(
            "POST",
            f"{self._repo_path(repo)}/git/commits",
            action=f"create commit in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"message": message, "tree": tree_sha, "parents": parents},
        )
        return _dig(payload, "sha")

    async def update_branch(self, repo: RepositoryInfo, branch: str, sha: str) -> None:
        await self._request(
            "PATCH",
            f"{self._repo_path(repo)}/git/refs/heads/{quote(branch)}",
            action=f"update branch {branch} in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"sha": sha, "force": False},
        )

    async def create_pull_request(
        self, repo: RepositoryInfo, title: str, head: str, base: str, body: str
    ) -> PullRequestInfo:
        payload = await self._request(
            "POST",
            f"{self._repo_path(repo)}/pulls",
            action=f"create pull request in {repo.full_name}",
            not_found=lambda: RepositoryNotFoundError(repo.org, repo.name),
            json={"title": title, "head": head, "base": base, "body": body},
        )
        return PullRequestInfo(
            number=int(_dig(payload, "number")),
            url=str(payload.get("html_url") or ""),
        )
