"""Sync service: detect changed templates and propagate them to target repositories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from teleporter.exceptions import PlatformError

if TYPE_CHECKING:
    from teleporter.platforms.base import (
        RepositoryPlatform,
        TemplateCategory,
        TemplateChange,
        UpdateResult,
    )
    from teleporter.services.updater_service import TemplateUpdater, UpdateCheck

logger = logging.getLogger(__name__)


def template_state_id(category: TemplateCategory, path: str) -> str:
    """Identifier under which a template's state is stored."""
    return f"{category.name}/{path}"


@dataclass
class RepositoryOutcome:
    """Result of propagating one category's changes to one repository."""

    repository: str
    result: UpdateResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class CategoryReport:
    """What a sync run did for one category."""

    category: str
    changes: list[TemplateChange] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    outcomes: list[RepositoryOutcome] = field(default_factory=list)
    state_recorded: bool = False

    @property
    def failed(self) -> bool:
        return any(not outcome.success for outcome in self.outcomes)


@dataclass
class SyncReport:
    """Summary of a whole sync run."""

    since_commit: str
    dry_run: bool = False
    categories: list[CategoryReport] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return any(report.failed for report in self.categories)

    @property
    def pull_requests(self) -> list[UpdateResult]:
        return [
            outcome.result
            for report in self.categories
            for outcome in report.outcomes
            if outcome.result is not None
        ]


async def detect_changes(
    platform: RepositoryPlatform,
    updater: TemplateUpdater,
    category: TemplateCategory,
    since_commit: str,
) -> tuple[list[tuple[TemplateChange, UpdateCheck]], list[str]]:
    """Return (changed, unchanged) templates of a category.

    A template reported by the platform counts as changed only when its
    checksum differs from the stored state. Changed templates get the stored
    checksum appended to ``old_checksums``.
    """
    changed: list[tuple[TemplateChange, UpdateCheck]] = []
    unchanged: list[str] = []
    for change in await platform.get_updated_templates(category, since_commit):
        check = await updater.check(template_state_id(category, change.path), change.content)
        if not check.needs_update:
            unchanged.append(change.path)
            continue
        previous = check.previous_checksum
        if previous is not None and previous not in change.old_checksums:
            change.old_checksums.append(previous)
        changed.append((change, check))
    return changed, unchanged


async def run_sync(
    platform: RepositoryPlatform,
    updater: TemplateUpdater,
    source_repository: str,
    since_commit: str,
    *,
    dry_run: bool = False,
) -> SyncReport:
    """Propagate templates changed since ``since_commit`` to every subscribed repository.

    Each category's changes go to its repositories as one pull request per
    repository. A platform error for one repository, including a failed
    lookup, is recorded in the report and does not stop the others. New
    checksums are recorded only when every repository of the category was
    updated, so a failed propagation is retried by the next run. A dry run
    performs no platform mutation and no state write.
    """
    report = SyncReport(since_commit=since_commit, dry_run=dry_run)

    for category in await platform.list_categories():
        pending, unchanged = await detect_changes(platform, updater, category, since_commit)
        category_report = CategoryReport(
            category=category.name,
            changes=[change for change, _ in pending],
            unchanged=unchanged,
        )
        report.categories.append(category_report)
        if not pending:
            logger.info("No template changes for category %s", category.name)
            continue

        repo_names = await platform.list_repo_names(category)
        if not repo_names:
            logger.info("Category %s has no subscribed repositories", category.name)

        for full_name in repo_names:
            try:
                repo = await platform.get_repository(full_name)
                if dry_run:
                    logger.info(
                        "Dry run: would update %s with %d templates",
                        full_name,
                        len(pending),
                    )
                    category_report.outcomes.append(RepositoryOutcome(repository=full_name))
                    continue
                result = await platform.update_repo(repo, category_report.changes)
            except PlatformError as exc:
                logger.error("Failed to update %s: %s", full_name, exc)
                category_report.outcomes.append(
                    RepositoryOutcome(repository=full_name, error=str(exc))
                )
                continue
            category_report.outcomes.append(RepositoryOutcome(repository=full_name, result=result))

        if dry_run:
            continue
        if category_report.failed:
            logger.warning(
                "Not recording state for category %s: %d repository updates failed",
                category.name,
                sum(1 for outcome in category_report.outcomes if not outcome.success),
            )
            continue

        for _, check in pending:
            await updater.record(check, source_repository)
        category_report.state_recorded = True
        logger.info("Recorded state for %d templates in category %s", len(pending), category.name)

    return report
