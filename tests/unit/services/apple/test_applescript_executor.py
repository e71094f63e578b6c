"""Tests for the osascript subprocess runner."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.apple_script_names import LIST_LIBRARY
from services.apple.applescript_executor import (
    INLINE_SCRIPT_MAX_BYTES,
    OSASCRIPT,
    PROCESS_EXIT_WAIT_SECONDS,
    PROCESS_KILL_WAIT_SECONDS,
    AppleScriptExecutor,
)


@pytest.fixture
def executor(tmp_path: Path, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> AppleScriptExecutor:
    """Create executor with mock loggers and a temporary scripts directory."""
    return AppleScriptExecutor(str(tmp_path), mock_console_logger, mock_error_logger)


def _make_mock_process(
    returncode: int = 0,
    stdout: bytes = b"output",
    stderr: bytes = b"",
) -> AsyncMock:
    """Create a mock asyncio subprocess process.

    Args:
        returncode: Exit code to return
        stdout: Stdout bytes to return from communicate
        stderr: Stderr bytes to return from communicate
    """
    mock_proc = AsyncMock()
    mock_proc.returncode = returncode
    mock_proc.communicate = AsyncMock(return_value=(stdout, stderr))
    mock_proc.wait = AsyncMock()
    mock_proc.kill = MagicMock()
    return mock_proc


class TestModuleConstants:
    def test_process_wait_constants(self) -> None:
        assert PROCESS_EXIT_WAIT_SECONDS == 0.5
        assert PROCESS_KILL_WAIT_SECONDS == 5.0


class TestExecuteSuccess:
    @pytest.mark.asyncio
    async def test_returns_stdout(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process(stdout=b'{"a", "b"}\n')

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            outcome = await executor.execute(["osascript"], "label", 30.0)

        assert outcome.succeeded
        assert outcome.stdout == '{"a", "b"}\n'

    @pytest.mark.asyncio
    async def test_stderr_on_success_logged_as_warning(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process(stdout=b"ok", stderr=b"some warning")

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            outcome = await executor.execute(["osascript"], "label", 30.0)

        assert outcome.succeeded
        executor.console_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_cleanup_waits_for_process(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            await executor.execute(["osascript"], "label", 30.0)

        mock_proc.wait.assert_called()


class TestExecuteFailure:
    @pytest.mark.asyncio
    async def test_non_zero_exit_is_reported_not_raised(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process(returncode=1, stdout=b"", stderr=b"0:5: execution error: nope (-1728)")

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            outcome = await executor.execute(["osascript"], "label", 30.0)

        assert not outcome.succeeded
        assert outcome.returncode == 1
        assert "(-1728)" in outcome.stderr
        executor.error_logger.error.assert_called()

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()
        mock_proc.communicate = AsyncMock(side_effect=TimeoutError())

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            outcome = await executor.execute(["osascript"], "slow", 5.0)

        assert outcome.timed_out
        assert outcome.timeout_seconds == 5.0
        assert not outcome.succeeded

    @pytest.mark.asyncio
    async def test_spawn_failure_raises(self, executor: AppleScriptExecutor) -> None:
        with (
            patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("osascript")),
            pytest.raises(FileNotFoundError),
        ):
            await executor.execute(["osascript"], "label", 30.0)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()
        mock_proc.communicate = AsyncMock(side_effect=asyncio.CancelledError())

        with (
            patch("asyncio.create_subprocess_exec", return_value=mock_proc),
            pytest.raises(asyncio.CancelledError),
        ):
            await executor.execute(["osascript"], "label", 30.0)

        mock_proc.wait.assert_called()


class TestCleanupProcess:
    @pytest.mark.asyncio
    async def test_kills_process_that_does_not_exit(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()
        mock_proc.wait = AsyncMock(side_effect=[TimeoutError(), None])

        await executor.cleanup_process(mock_proc, "stuck")

        mock_proc.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_process_is_tolerated(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()
        mock_proc.wait = AsyncMock(side_effect=TimeoutError())
        mock_proc.kill = MagicMock(side_effect=ProcessLookupError())

        await executor.cleanup_process(mock_proc, "gone")

        executor.console_logger.warning.assert_called()


class TestRunScript:
    @pytest.mark.asyncio
    async def test_small_script_passed_inline_in_source_form(self, executor: AppleScriptExecutor) -> None:
        mock_proc = _make_mock_process()

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc) as mock_exec:
            await executor.run_script('return "x"', "label", 10.0)

        args = mock_exec.call_args[0]
        assert args[:4] == (OSASCRIPT, "-s", "s", "-e")
        assert args[4] == 'return "x"'

    def test_large_script_uses_temp_file(self, executor: AppleScriptExecutor) -> None:
        assert executor.should_use_temp_file("x" * (INLINE_SCRIPT_MAX_BYTES + 1))
        assert not executor.should_use_temp_file("x" * 100)

    @pytest.mark.asyncio
    async def test_temp_file_is_removed_after_run(self, executor: AppleScriptExecutor, tmp_path: Path) -> None:
        mock_proc = _make_mock_process()
        script = "-- padding\n" * (INLINE_SCRIPT_MAX_BYTES // 10)

        with patch("asyncio.create_subprocess_exec", return_value=mock_proc) as mock_exec:
            outcome = await executor.run_script(script, "big", 10.0)

        assert outcome.succeeded
        args = mock_exec.call_args[0]
        assert args[:3] == (OSASCRIPT, "-s", "s")
        assert args[3].endswith(".applescript")
        assert Path(args[3]).parent == tmp_path
        assert list(tmp_path.glob("*.applescript")) == []


class TestLogScriptSuccess:
    def test_listing_logs_size(self, executor: AppleScriptExecutor) -> None:
        executor.log_script_success(LIST_LIBRARY, "{}" * 512, 1.5)
        executor.console_logger.info.assert_called_once()
        call_args = executor.console_logger.info.call_args[0]
        assert "KB" in call_args[0]

    def test_other_commands_log_preview_at_debug(self, executor: AppleScriptExecutor) -> None:
        executor.log_script_success("create_playlist 'x'", '"ABC"', 0.2)
        executor.console_logger.debug.assert_called_once()
        executor.console_logger.info.assert_not_called()
