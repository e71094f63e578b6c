"""Pytest configuration and shared fixtures for Music Library Bridge."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from core.models.config_models import AppConfig


@pytest.fixture
def mock_console_logger() -> MagicMock:
    """Mock console logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def mock_error_logger() -> MagicMock:
    """Mock error logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration with fast readiness polling."""
    return AppConfig(
        readiness={"poll_interval_seconds": 0.01, "max_polls": 3, "launch_timeout_seconds": 1.0},
        reorganization={"move_delay_seconds": 0},
    )
