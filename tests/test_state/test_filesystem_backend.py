"""Tests for the filesystem state backend."""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from teleporter.exceptions import StateDeserializationError, StateStoreIOError
from teleporter.state.base import StatePersistence
from teleporter.state.filesystem import FilesystemBackend, sanitize_template_id
from tests.conftest import FIXED_NOW, make_state

if TYPE_CHECKING:
    from pathlib import Path


class TestSanitizeTemplateId:
    @pytest.mark.parametrize(
        ("template_id", "expected"),
        [
            ("templates/ci.yml", "templates_ci.yml"),
            ("a\\b", "a_b"),
            ("c:d", "c_d"),
            ("glob*", "glob_"),
            ("nul\x00byte", "nul_byte"),
            ("plain-id.txt", "plain-id.txt"),
        ],
    )
    def test_replaces_unsafe_characters(self, template_id: str, expected: str) -> None:
        assert sanitize_template_id(template_id) == expected


class TestFilesystemBackend:
    def test_satisfies_protocol(self, fs_backend: FilesystemBackend) -> None:
        assert isinstance(fs_backend, StatePersistence)

    def test_creates_base_directory(self, state_dir: Path) -> None:
        FilesystemBackend(state_dir / "nested")
        assert (state_dir / "nested").is_dir()

    async def test_round_trip(self, fs_backend: FilesystemBackend) -> None:
        state = make_state("python/ci.yml")

        await fs_backend.update_state(state)

        assert await fs_backend.get_state("python/ci.yml") == state

    async def test_nul_in_template_id(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        state = make_state("ci\x00.yml")

        await fs_backend.update_state(state)

        assert (state_dir / "ci_.yml.json").exists()
        assert await fs_backend.get_state("ci\x00.yml") == state

    async def test_missing_returns_none(self, fs_backend: FilesystemBackend) -> None:
        assert await fs_backend.get_state("never-written") is None

    async def test_file_layout_and_camel_case_keys(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        await fs_backend.update_state(make_state("templates/ci.yml"))

        path = state_dir / "templates_ci.yml.json"
        assert path.exists()
        assert not (state_dir / "templates_ci.yml.json.tmp").exists()
        data = json.loads(path.read_text())
        assert set(data) == {"templateId", "sourceRepository", "currentChecksum", "lastUpdatedUtc"}
        assert data["templateId"] == "templates/ci.yml"

    async def test_overwrite_keeps_latest(self, fs_backend: FilesystemBackend) -> None:
        await fs_backend.update_state(make_state("t", checksum="a" * 64))
        newer = make_state("t", checksum="b" * 64, last_updated=FIXED_NOW + timedelta(hours=1))
        await fs_backend.update_state(newer)

        assert await fs_backend.get_state("t") == newer

    async def test_corrupt_file_raises(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        (state_dir / "broken.json").write_text("{definitely not json")

        with pytest.raises(StateDeserializationError, match="broken"):
            await fs_backend.get_state("broken")

    async def test_missing_field_raises(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        (state_dir / "partial.json").write_text(json.dumps({"templateId": "partial"}))

        with pytest.raises(StateDeserializationError):
            await fs_backend.get_state("partial")

    async def test_concurrent_writers_leave_one_valid_record(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        states = [
            make_state("shared", checksum=f"{i:064x}", last_updated=FIXED_NOW + timedelta(i))
            for i in range(10)
        ]

        await asyncio.gather(*(fs_backend.update_state(state) for state in states))

        stored = await fs_backend.get_state("shared")
        assert stored in states
        assert sorted(p.name for p in state_dir.iterdir()) == ["shared.json"]

    @pytest.mark.skipif(
        sys.platform == "win32" or os.geteuid() == 0,
        reason="permission bits are not enforced",
    )
    async def test_unwritable_directory_raises_and_keeps_record(
        self, fs_backend: FilesystemBackend, state_dir: Path
    ) -> None:
        original = make_state("locked")
        await fs_backend.update_state(original)
        state_dir.chmod(0o500)
        try:
            with pytest.raises(StateStoreIOError, match="locked"):
                await fs_backend.update_state(make_state("locked", checksum="c" * 64))
        finally:
            state_dir.chmod(0o700)

        assert await fs_backend.get_state("locked") == original

    def test_base_path_is_a_file(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(StateStoreIOError, match="state directory"):
            FilesystemBackend(blocker / "state")
