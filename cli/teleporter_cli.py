"""CLI for running template synchronization."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from teleporter.config import load_settings
from teleporter.exceptions import TeleporterError
from teleporter.filesystem.toml_manager import (
    MASTER_CONFIG_FILE,
    find_config_problems,
    load_master_config,
    write_master_config,
)
from teleporter.main import configure_logging, open_platform, open_updater
from teleporter.services.sync_service import run_sync

if TYPE_CHECKING:
    from teleporter.config import Settings
    from teleporter.services.sync_service import SyncReport


def print_report(report: SyncReport) -> None:
    """Print a human-readable summary of a sync run."""
    title = "Sync Status" if report.dry_run else "Sync Result"
    print(f"{title} (since {report.since_commit}):")
    for category in report.categories:
        print(f"  [{category.category}]")
        for change in category.changes:
            print(f"    * {change.path} (changed)")
        for path in category.unchanged:
            print(f"    = {path} (already recorded)")
        for outcome in category.outcomes:
            if outcome.error is not None:
                print(f"    ! {outcome.repository}: {outcome.error}")
            elif outcome.result is not None:
                print(f"    > {outcome.repository}: {outcome.result.pr_url}")
            else:
                print(f"    > {outcome.repository} (would update)")
        if category.state_recorded:
            print("    state recorded")
    print(f"  Pull requests opened: {len(report.pull_requests)}")


async def _sync(settings: Settings, since: str, dry_run: bool) -> int:
    settings.validate_runtime()
    async with open_updater(settings) as updater, open_platform(settings) as platform:
        report = await run_sync(
            platform,
            updater,
            settings.master_repository,
            since,
            dry_run=dry_run,
        )
    print_report(report)
    return 1 if report.has_failures else 0


async def _check(settings: Settings, template_id: str, file_path: Path, source: str) -> int:
    settings.validate_runtime(require_platform=False)
    try:
        content = file_path.read_bytes()
    except OSError as exc:
        print(f"Error: cannot read {file_path}: {exc}", file=sys.stderr)
        return 1
    async with open_updater(settings) as updater:
        written = await updater.process_update(template_id, source, content)
    print(f"{template_id}: {'updated' if written else 'unchanged'}")
    return 0


async def _show_state(settings: Settings, template_id: str) -> int:
    settings.validate_runtime(require_platform=False)
    async with open_updater(settings) as updater:
        state = await updater.state_manager.get_state(template_id)
    if state is None:
        print(f"No state recorded for {template_id}")
        return 1
    print(state.to_json())
    return 0


def _validate_config(path: Path, write: bool) -> int:
    config = load_master_config(path)
    print(f"{path}: {len(config.categories)} categories, {len(config.repositories)} repositories")
    for name, category in sorted(config.categories.items()):
        targets = config.repositories_for(name)
        print(f"  [{name}] {len(category.files)} files, {len(targets)} repositories")
    problems = find_config_problems(config)
    for problem in problems:
        print(f"  ! {problem}")
    if problems:
        return 1
    if write:
        write_master_config(path, config)
        print(f"Rewrote {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="teleporter",
        description="Propagate master templates to subscribed repositories",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--state-dir", help="Directory of the filesystem state backend")
    parser.add_argument(
        "--state-backend", help="State backend to use (filesystem or database)"
    )

    subparsers = parser.add_subparsers(dest="command")

    status_parser = subparsers.add_parser("status", help="Show templates that would propagate")
    status_parser.add_argument("--since", required=True, help="Master revision to compare from")

    sync_parser = subparsers.add_parser("sync", help="Propagate changed templates")
    sync_parser.add_argument("--since", required=True, help="Master revision to compare from")
    sync_parser.add_argument(
        "--dry-run", action="store_true", help="Detect changes without opening pull requests"
    )

    check_parser = subparsers.add_parser("check", help="Record a local file's checksum")
    check_parser.add_argument("template_id", help="Template identifier, e.g. python/ci.yml")
    check_parser.add_argument("file", help="Path of the template content")
    check_parser.add_argument("--source", default="local", help="Source repository to record")

    show_parser = subparsers.add_parser("show-state", help="Print the stored state of a template")
    show_parser.add_argument("template_id", help="Template identifier")

    validate_parser = subparsers.add_parser(
        "validate-config", help="Check a local master configuration file"
    )
    validate_parser.add_argument(
        "path", nargs="?", default=MASTER_CONFIG_FILE, help="Path of the configuration file"
    )
    validate_parser.add_argument(
        "--write", action="store_true", help="Rewrite the file in canonical form when valid"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    overrides: dict[str, Any] = {}
    if args.debug:
        overrides["debug"] = True
    if args.state_dir:
        overrides["state_dir"] = Path(args.state_dir)
    if args.state_backend:
        overrides["state_backend"] = args.state_backend

    try:
        settings = load_settings(**overrides)
        configure_logging(settings.debug)
        if args.command == "validate-config":
            return _validate_config(Path(args.path), write=args.write)
        if args.command == "status":
            return asyncio.run(_sync(settings, args.since, dry_run=True))
        if args.command == "sync":
            return asyncio.run(_sync(settings, args.since, dry_run=args.dry_run))
        if args.command == "check":
            return asyncio.run(_check(settings, args.template_id, Path(args.file), args.source))
        return asyncio.run(_show_state(settings, args.template_id))
    except TeleporterError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
