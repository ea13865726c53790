"""Conflict-aware writing of generated files.

Each file is handled independently: its outcome (written, skipped or
conflict) never depends on what happened to any other file.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

ConflictResolver = Callable[[Path], Union[bool, Awaitable[bool]]]


class OverwriteMode(str, Enum):
    """What to do when a target file already exists."""
    ASK = "ask"
    ALWAYS = "always"
    NEVER = "never"


class WriteOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    CONFLICT = "conflict"


@dataclass
class WriteResult:
    """Relative paths grouped by outcome, in input order."""

    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


class FileWriter:
    """Writes a ``relative path -> content`` map below ``output_dir``.

    Args:
        output_dir: Root directory of the generated project.
        dry_run: Report every file as written without touching the disk.
        overwrite_mode: Policy for files that already exist.
        on_conflict: Called with the absolute path of an existing file in
            ``ask`` mode; may be a plain function or a coroutine function.
            Without it, existing files are reported as conflicts.
    """

    def __init__(
        self,
        output_dir: str | Path,
        *,
        dry_run: bool = False,
        overwrite_mode: OverwriteMode | str = OverwriteMode.ASK,
        on_conflict: Optional[ConflictResolver] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.dry_run = dry_run
        self.overwrite_mode = OverwriteMode(overwrite_mode)
        self.on_conflict = on_conflict

    async def write_all(self, files: Mapping[str, str]) -> WriteResult:
        """Write every entry of *files* and group the paths by outcome."""
        result = WriteResult()
        for relative_path, content in files.items():
            outcome = await self.write_file(relative_path, content)
            if outcome is WriteOutcome.WRITTEN:
                result.written.append(relative_path)
            elif outcome is WriteOutcome.SKIPPED:
                result.skipped.append(relative_path)
            else:
                result.conflicts.append(relative_path)
        return result

    async def write_file(self, relative_path: str, content: str) -> WriteOutcome:
        """Apply the overwrite policy to one file and return its outcome."""
        if self.dry_run:
            return WriteOutcome.WRITTEN

        absolute_path = self.output_dir / relative_path
        exists = await asyncio.to_thread(absolute_path.exists)
        if not exists:
            await asyncio.to_thread(_write_file, absolute_path, content)
            return WriteOutcome.WRITTEN

        if self.overwrite_mode is OverwriteMode.ALWAYS:
            await asyncio.to_thread(_write_file, absolute_path, content)
            return WriteOutcome.WRITTEN

        if self.overwrite_mode is OverwriteMode.NEVER:
            return WriteOutcome.SKIPPED

        if self.on_conflict is None:
            logger.debug("Conflict on %s (no resolver supplied)", relative_path)
            return WriteOutcome.CONFLICT

        decision = self.on_conflict(absolute_path)
        if inspect.isawaitable(decision):
            decision = await decision
        if decision:
            await asyncio.to_thread(_write_file, absolute_path, content)
            return WriteOutcome.WRITTEN
        return WriteOutcome.SKIPPED


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
