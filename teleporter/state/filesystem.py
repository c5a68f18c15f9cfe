"""State backend storing one JSON file per template in a local directory."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
from typing import TYPE_CHECKING

from teleporter.exceptions import StateStoreIOError
from teleporter.state.base import TemplateState

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[/\\:*\x00]")

STATE_SUFFIX = ".json"
STAGING_SUFFIX = ".tmp"


def sanitize_template_id(template_id: str) -> str:
    """Replace path separators, wildcards and NUL so the id is a safe file name.

    ``templates/ci.yml`` becomes ``templates_ci.yml``. Applying it twice gives
    the same result as applying it once.
    """
    return _UNSAFE_ID_CHARS.sub("_", template_id)


def _write_atomic(path: Path, payload: bytes) -> None:
    """Write payload to a staging file, fsync it, then rename it over path."""
    staging = path.with_name(path.name + STAGING_SUFFIX)
    try:
        with open(staging, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(staging, path)
    except OSError:
        with contextlib.suppress(OSError):
            staging.unlink(missing_ok=True)
        raise


class FilesystemBackend:
    """Stores ``TemplateState`` records as ``<sanitized id>.json`` files.

    Every operation holds an instance-wide lock, so reads and writes issued
    through one backend are linearized. Writes go through a ``.json.tmp``
    staging file and an atomic rename; a failed write leaves the previous
    record untouched. Nothing coordinates separate processes sharing the
    directory: the last rename wins.
    """

    def __init__(self, base_path: Path) -> None:
        try:
            base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Failed to create state directory {base_path}: {exc}"
            raise StateStoreIOError(msg) from exc
        self.base_path = base_path
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        """Nothing to release; files are opened per operation."""

    def state_path(self, template_id: str) -> Path:
        """Return the file holding the state for template_id."""
        return self.base_path / f"{sanitize_template_id(template_id)}{STATE_SUFFIX}"

    async def get_state(self, template_id: str) -> TemplateState | None:
        """Read the state file for template_id, returning None when absent."""
        path = self.state_path(template_id)
        async with self._lock:
            try:
                raw = await asyncio.to_thread(path.read_bytes)
            except FileNotFoundError:
                return None
            except OSError as exc:
                msg = f"Failed to read state for {template_id}: {exc}"
                raise StateStoreIOError(msg) from exc
        return TemplateState.from_json(raw, template_id=template_id)

    async def update_state(self, state: TemplateState) -> None:
        """Atomically replace the state file for ``state.template_id``."""
        path = self.state_path(state.template_id)
        payload = state.to_json().encode("utf-8")
        async with self._lock:
            try:
                await asyncio.to_thread(_write_atomic, path, payload)
            except OSError as exc:
                msg = f"Failed to write state for {state.template_id}: {exc}"
                raise StateStoreIOError(msg) from exc
        logger.debug("Wrote state for %s to %s", state.template_id, path)
