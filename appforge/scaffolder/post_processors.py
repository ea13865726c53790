"""External tools run over a freshly generated project.

Each post-processor raises ``PostProcessorError`` when its tool is missing
or exits non-zero; the scaffold engine records the failure and carries on.
"""

from __future__ import annotations

import logging
from pathlib import Path

from appforge.errors import PostProcessorError
from appforge.utils import run_command

logger = logging.getLogger(__name__)


async def _run_tool(name: str, cmd: list[str], project_dir: Path, timeout: int) -> None:
    logger.info("Running %s in %s", " ".join(cmd), project_dir)
    try:
        returncode, stdout, stderr = await run_command(cmd, cwd=project_dir, timeout=timeout)
    except FileNotFoundError as exc:
        raise PostProcessorError(name, f"{cmd[0]} not found") from exc
    if returncode != 0:
        detail = stderr or stdout or f"exit code {returncode}"
        raise PostProcessorError(name, detail.splitlines()[-1])


async def run_dart_format(project_dir: str | Path) -> None:
    await _run_tool("dart-format", ["dart", "format", "."], Path(project_dir), timeout=120)


async def run_flutter_pub_get(project_dir: str | Path) -> None:
    await _run_tool("flutter-pub-get", ["flutter", "pub", "get"], Path(project_dir), timeout=300)


async def run_build_runner(project_dir: str | Path) -> None:
    await _run_tool(
        "build-runner",
        ["dart", "run", "build_runner", "build", "--delete-conflicting-outputs"],
        Path(project_dir),
        timeout=600,
    )
