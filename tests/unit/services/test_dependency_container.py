"""Tests for wiring the bridge pipeline and services."""

from __future__ import annotations

import logging

import pytest

from core.dry_run import DryRunBridgeExecutor
from core.models.config_models import AppConfig
from services.apple import BridgeExecutor
from services.dependency_container import DependencyContainer


def _container(
    app_config: AppConfig,
    console_logger: logging.Logger,
    error_logger: logging.Logger,
    *,
    dry_run: bool = False,
) -> DependencyContainer:
    return DependencyContainer("config.yaml", console_logger, error_logger, config=app_config, dry_run=dry_run)


class TestDependencyContainer:
    def test_services_unavailable_before_initialize(
        self,
        app_config: AppConfig,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        deps = _container(app_config, mock_console_logger, mock_error_logger)

        with pytest.raises(RuntimeError, match="not initialized"):
            _ = deps.executor
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = deps.reorganization

    @pytest.mark.asyncio
    async def test_initialize_wires_real_executor(
        self,
        app_config: AppConfig,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        deps = _container(app_config, mock_console_logger, mock_error_logger)

        await deps.initialize()
        try:
            assert isinstance(deps.executor, BridgeExecutor)
            assert deps.sync_service.executor is deps.executor
            assert deps.mirror.sync_service is deps.sync_service
            assert deps.reorganization.settings is app_config.reorganization
            assert deps.dry_run is False
        finally:
            await deps.close()

    @pytest.mark.asyncio
    async def test_dry_run_wraps_executor(
        self,
        app_config: AppConfig,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        deps = _container(app_config, mock_console_logger, mock_error_logger, dry_run=True)

        await deps.initialize()
        try:
            assert isinstance(deps.executor, DryRunBridgeExecutor)
        finally:
            await deps.close()

    @pytest.mark.asyncio
    async def test_dry_run_from_config(
        self,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        deps = _container(AppConfig(dry_run=True), mock_console_logger, mock_error_logger)

        await deps.initialize()
        try:
            assert deps.dry_run is True
        finally:
            await deps.close()

    @pytest.mark.asyncio
    async def test_close_fails_later_commands(
        self,
        app_config: AppConfig,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        deps = _container(app_config, mock_console_logger, mock_error_logger)
        await deps.initialize()
        await deps.close()

        with pytest.raises(RuntimeError, match="closed"):
            await deps.executor.run(deps.builder.list_folder_names())
