"""Update orchestration: turn a batch of template changes into a pull request."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from teleporter.exceptions import OperationFailedError, PlatformError
from teleporter.platforms.base import TreeEntry, UpdateResult
from teleporter.services.datetime_service import format_stamp, now_utc

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from teleporter.platforms.base import GitDataApi, RepositoryInfo, TemplateChange

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "template-teleporter-updates"


def make_branch_name(timestamp: datetime) -> str:
    """Derive the update branch name from the run timestamp.

    Microsecond resolution keeps concurrent runs against one repository on
    distinct branches.
    """
    return f"{BRANCH_PREFIX}-{format_stamp(timestamp)}"


def build_commit_message(changes: Sequence[TemplateChange], stamp: str) -> str:
    """Commit message listing every updated path."""
    lines = "\n".join(f"- Update {change.path}" for change in changes)
    return f"chore: Apply template updates from template-teleporter ({stamp})\n\n{lines}"


def build_pull_request_text(changes: Sequence[TemplateChange], stamp: str) -> tuple[str, str]:
    """Return (title, body) of the update pull request."""
    title = f"chore: Update templates from template-teleporter ({stamp})"
    listing = "\n".join(f"- `{change.path}`" for change in changes)
    body = (
        "Automated template updates applied by Template Teleporter.\n\n"
        f"Changes applied:\n{listing}"
    )
    return title, body


class UpdateOrchestrator:
    """Runs the branch, blob, tree, commit, ref and pull request sequence.

    Steps run strictly in order and the first failure aborts the run. Objects
    created before the failure (the branch in particular) are left in place.
    """

    def __init__(self, api: GitDataApi, clock: Callable[[], datetime] = now_utc) -> None:
        self.api = api
        self.clock = clock

    async def run(self, repo: RepositoryInfo, changes: Sequence[TemplateChange]) -> UpdateResult:
        """Apply changes to repo and open a pull request against its default branch."""
        if not changes:
            msg = f"No changes provided to update {repo.full_name}"
            raise OperationFailedError(msg)

        logger.info("Updating %s with %d template changes", repo.full_name, len(changes))

        head_sha = await self.api.get_branch_head(repo, repo.default_branch)
        logger.debug(
            "Default branch %s of %s is at %s", repo.default_branch, repo.full_name, head_sha
        )

        timestamp = self.clock()
        stamp = format_stamp(timestamp)
        branch = make_branch_name(timestamp)

        await self.api.create_branch(repo, branch, head_sha)
        logger.info("Created branch %s in %s", branch, repo.full_name)

        try:
            return await self._commit_and_open(repo, changes, head_sha, branch, stamp)
        except PlatformError:
            logger.error(
                "Update of %s failed after creating branch %s; the branch is left in place",
                repo.full_name,
                branch,
            )
            raise

    async def _commit_and_open(
        self,
        repo: RepositoryInfo,
        changes: Sequence[TemplateChange],
        head_sha: str,
        branch: str,
        stamp: str,
    ) -> UpdateResult:
        base_tree = await self.api.get_commit_tree(repo, head_sha)

        entries: list[TreeEntry] = []
        for change in changes:
            blob_sha = await self.api.create_blob(repo, change.content)
            logger.debug("Created blob %s for %s", blob_sha, change.path)
            entries.append(TreeEntry(path=change.path, sha=blob_sha))

        # One tree for the whole batch so the commit never holds a partial update.
        tree_sha = await self.api.create_tree(repo, base_tree, entries)

        message = build_commit_message(changes, stamp)
        commit_sha = await self.api.create_commit(repo, message, tree_sha, [head_sha])
        await self.api.update_branch(repo, branch, commit_sha)
        logger.info("Branch %s of %s now at commit %s", branch, repo.full_name, commit_sha)

        title, body = build_pull_request_text(changes, stamp)
        pull_request = await self.api.create_pull_request(
            repo, title=title, head=branch, base=repo.default_branch, body=body
        )
        logger.info("Opened pull request #%d in %s", pull_request.number, repo.full_name)

        return UpdateResult(
            pr_url=pull_request.url,
            pr_number=pull_request.number,
            updated_files=[change.path for change in changes],
        )
