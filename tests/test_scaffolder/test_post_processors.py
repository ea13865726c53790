"""Tests for the dart/flutter post-processors (subprocess mocked)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from appforge.errors import PostProcessorError
from appforge.scaffolder.post_processors import (
    run_build_runner,
    run_dart_format,
    run_flutter_pub_get,
)

pytestmark = pytest.mark.unit


class TestCommands:
    @pytest.mark.asyncio
    async def test_dart_format(self, mock_run_command: AsyncMock, tmp_path: Path):
        await run_dart_format(tmp_path)
        cmd = mock_run_command.call_args.args[0]
        assert cmd == ["dart", "format", "."]
        assert mock_run_command.call_args.kwargs["cwd"] == tmp_path

    @pytest.mark.asyncio
    async def test_flutter_pub_get(self, mock_run_command: AsyncMock, tmp_path: Path):
        await run_flutter_pub_get(str(tmp_path))
        assert mock_run_command.call_args.args[0] == ["flutter", "pub", "get"]
        assert mock_run_command.call_args.kwargs["cwd"] == tmp_path

    @pytest.mark.asyncio
    async def test_build_runner(self, mock_run_command: AsyncMock, tmp_path: Path):
        await run_build_runner(tmp_path)
        assert mock_run_command.call_args.args[0] == [
            "dart", "run", "build_runner", "build", "--delete-conflicting-outputs",
        ]


class TestFailures:
    @pytest.mark.asyncio
    async def test_non_zero_exit_raises_with_last_stderr_line(
        self, mock_run_command: AsyncMock, tmp_path: Path
    ):
        mock_run_command.return_value = (1, "", "Resolving...\nversion solving failed")
        with pytest.raises(PostProcessorError) as exc_info:
            await run_flutter_pub_get(tmp_path)
        assert str(exc_info.value) == "version solving failed"
        assert exc_info.value.tool == "flutter-pub-get"

    @pytest.mark.asyncio
    async def test_exit_code_used_without_output(
        self, mock_run_command: AsyncMock, tmp_path: Path
    ):
        mock_run_command.return_value = (65, "", "")
        with pytest.raises(PostProcessorError, match="exit code 65"):
            await run_build_runner(tmp_path)

    @pytest.mark.asyncio
    async def test_missing_tool(self, mock_run_command: AsyncMock, tmp_path: Path):
        mock_run_command.side_effect = FileNotFoundError("dart")
        with pytest.raises(PostProcessorError, match="dart not found"):
            await run_dart_format(tmp_path)
