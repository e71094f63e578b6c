"""Tests for the launch-and-poll readiness gate."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.models.config_models import ReadinessConfig
from services.apple.error_classifier import ScriptOutcome
from services.apple.readiness_gate import LAUNCH_LABEL, ReadinessGate

RUNNING = ScriptOutcome(stdout="true\n")
NOT_RUNNING = ScriptOutcome(stdout="false\n")


def _make_gate(
    probe_results: list[ScriptOutcome | Exception],
    console_logger: logging.Logger,
    error_logger: logging.Logger,
    max_polls: int = 3,
) -> tuple[ReadinessGate, MagicMock]:
    runner = MagicMock()
    runner.run_script = AsyncMock(side_effect=probe_results)
    runner.execute = AsyncMock(return_value=ScriptOutcome())
    readiness = ReadinessConfig(poll_interval_seconds=0.001, max_polls=max_polls, launch_timeout_seconds=1.0)
    return ReadinessGate("com.apple.Music", readiness, runner, console_logger, error_logger), runner


class TestReadinessGate:
    @pytest.mark.asyncio
    async def test_running_app_needs_no_launch(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, runner = _make_gate([RUNNING], mock_console_logger, mock_error_logger)

        assert await gate.ensure_ready() is True
        runner.execute.assert_not_called()
        runner.run_script.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launches_then_polls_until_running(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, runner = _make_gate([NOT_RUNNING, NOT_RUNNING, RUNNING], mock_console_logger, mock_error_logger)

        assert await gate.ensure_ready() is True
        runner.execute.assert_awaited_once()
        cmd, label, _timeout = runner.execute.call_args[0]
        assert cmd == ["open", "-b", "com.apple.Music"]
        assert label == LAUNCH_LABEL
        assert runner.run_script.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_poll_budget_without_raising(
        self,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        gate, runner = _make_gate([NOT_RUNNING] * 4, mock_console_logger, mock_error_logger, max_polls=3)

        assert await gate.ensure_ready() is False
        assert runner.run_script.await_count == 4
        mock_error_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_probe_failure_counts_as_not_running(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, _runner = _make_gate([OSError("spawn failed")], mock_console_logger, mock_error_logger)

        assert await gate.is_running() is False

    @pytest.mark.asyncio
    async def test_failed_probe_process_is_not_running(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, _runner = _make_gate([ScriptOutcome(stdout="true", returncode=1)], mock_console_logger, mock_error_logger)

        assert await gate.is_running() is False

    @pytest.mark.asyncio
    async def test_launch_failure_is_logged_not_raised(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, runner = _make_gate([NOT_RUNNING, RUNNING], mock_console_logger, mock_error_logger)
        runner.execute = AsyncMock(side_effect=OSError("open missing"))

        assert await gate.ensure_ready() is True
        mock_error_logger.warning.assert_called()

    def test_probe_script_uses_bundle_identifier(self, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        gate, _runner = _make_gate([], mock_console_logger, mock_error_logger)
        assert gate._probe_script == 'application id "com.apple.Music" is running'
