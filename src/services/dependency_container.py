"""Dependency Injection Container Module.

Builds the bridge pipeline (sanitizer, script builder, subprocess runner,
readiness gate, decoder, classifier, executor) and the services on top of it,
starts the executor's worker and stops it again on shutdown.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import yaml

from core.core_config import load_config
from core.dry_run import DryRunBridgeExecutor
from core.logger import LogFormat, shorten_path
from services.apple import (
    AppleScriptExecutor,
    AppleScriptSanitizer,
    BridgeExecutor,
    ErrorClassifier,
    ReadinessGate,
    ResultDecoder,
    ScriptBuilder,
)
from services.library_mirror import LibraryMirror
from services.library_sync import LibrarySyncService
from services.reorganization import ReorganizationEngine

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable

    from core.logger import SafeQueueListener
    from core.models.config_models import AppConfig
    from core.models.protocols import BridgeExecutorProtocol


class StartableService(Protocol):
    """Protocol for services with an async ``start``."""

    def start(self, *args: Any, **kwargs: Any) -> Awaitable[None]:
        """Start the service."""
        ...


class DependencyContainer:
    """Dependency injection container for the application."""

    def __init__(
        self,
        config_path: str,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        *,
        config: AppConfig | None = None,
        logging_listener: SafeQueueListener | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the dependency container.

        Args:
            config_path: Path to the configuration file
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config: Already loaded configuration (loaded from ``config_path`` when None)
            logging_listener: Optional queue listener for logging
            dry_run: Whether to run in dry-run mode (no changes made)

        """
        self._console_logger = console_logger
        self._error_logger = error_logger
        self._listener = logging_listener

        self._config_path = config_path
        self._config: AppConfig | None = config
        self._dry_run = dry_run
        self._executor: BridgeExecutorProtocol | None = None
        self._builder: ScriptBuilder | None = None
        self._sync_service: LibrarySyncService | None = None
        self._mirror: LibraryMirror | None = None
        self._reorganization: ReorganizationEngine | None = None

    @property
    def dry_run(self) -> bool:
        """Get the dry run status."""
        return self._dry_run

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        if self._config is None:
            msg = "Configuration not loaded"
            raise RuntimeError(msg)
        return self._config

    @property
    def config_path(self) -> Path:
        """Get the resolved configuration file path."""
        return Path(self._config_path)

    @property
    def executor(self) -> BridgeExecutorProtocol:
        """Get the bridge executor (real or dry-run)."""
        if self._executor is None:
            msg = "Bridge executor not initialized"
            raise RuntimeError(msg)
        return self._executor

    @property
    def builder(self) -> ScriptBuilder:
        """Get the script builder."""
        if self._builder is None:
            msg = "Script builder not initialized"
            raise RuntimeError(msg)
        return self._builder

    @property
    def sync_service(self) -> LibrarySyncService:
        """Get the library sync service."""
        if self._sync_service is None:
            msg = "Library sync service not initialized"
            raise RuntimeError(msg)
        return self._sync_service

    @property
    def mirror(self) -> LibraryMirror:
        """Get the local library mirror."""
        if self._mirror is None:
            msg = "Library mirror not initialized"
            raise RuntimeError(msg)
        return self._mirror

    @property
    def reorganization(self) -> ReorganizationEngine:
        """Get the reorganization engine."""
        if self._reorganization is None:
            msg = "Reorganization engine not initialized"
            raise RuntimeError(msg)
        return self._reorganization

    @property
    def console_logger(self) -> logging.Logger:
        """Get the console logger."""
        return self._console_logger

    @property
    def error_logger(self) -> logging.Logger:
        """Get the error logger."""
        return self._error_logger

    async def _initialize_service(self, service: StartableService | None, service_name: str, **kwargs: Any) -> None:
        """Start a service instance, timing it and logging any failure.

        Args:
            service: The service instance to start
            service_name: Human-readable name for logging purposes
            **kwargs: Additional keyword arguments forwarded to ``start``

        """
        start_method = getattr(service, "start", None)
        if not callable(start_method):
            self._error_logger.warning(" %s instance has no start method", LogFormat.entity(service_name))
            return

        self._console_logger.debug(" Starting %s...", LogFormat.entity(service_name))
        start = time.monotonic()
        try:
            result = start_method(**kwargs)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            elapsed = time.monotonic() - start
            self._error_logger.exception(" Failed to start %s after %.2fs: %s", LogFormat.entity(service_name), elapsed, e)
            raise

        elapsed = time.monotonic() - start
        self._console_logger.debug(" %s started in %.2fs", LogFormat.entity(service_name), elapsed)

    def _build_executor(self, config: AppConfig) -> BridgeExecutorProtocol:
        """Build the bridge executor, wrapped for dry runs when requested."""
        runner = AppleScriptExecutor(config.scripts_temp_dir, self._console_logger, self._error_logger)
        gate = ReadinessGate(config.music_app_id, config.readiness, runner, self._console_logger, self._error_logger)
        real_executor = BridgeExecutor(
            runner,
            gate,
            ResultDecoder(),
            ErrorClassifier(),
            config.applescript_timeouts,
            config.readiness,
            self._console_logger,
            self._error_logger,
        )
        self._log_scripts_dir(runner.scripts_temp_dir, config)

        if not self._dry_run:
            return real_executor
        self._console_logger.info("Dry run enabled - using %s", LogFormat.entity("DryRunBridgeExecutor"))
        return DryRunBridgeExecutor(real_executor, self._console_logger, self._error_logger)

    async def initialize(self) -> None:
        """Build every service and start the bridge worker."""
        self._console_logger.debug("Starting initialization of services...")

        if self._config is None:
            self._config = self._load_config()
        config = self._config
        self._dry_run = self._dry_run or config.dry_run

        if self._builder is None:
            self._builder = ScriptBuilder(config, AppleScriptSanitizer(self._console_logger), self._console_logger)
        if self._executor is None:
            self._executor = self._build_executor(config)
        if self._sync_service is None:
            self._sync_service = LibrarySyncService(self._executor, self._builder, self._console_logger, self._error_logger)
        if self._mirror is None:
            self._mirror = LibraryMirror(self._sync_service, self._console_logger)
        if self._reorganization is None:
            self._reorganization = ReorganizationEngine(
                self._sync_service,
                config.reorganization,
                self._console_logger,
                self._error_logger,
            )

        await self._initialize_service(self._executor, "Bridge Executor")
        self._console_logger.debug(" All services initialized successfully")

    async def close(self) -> None:
        """Stop the bridge worker; queued commands fail instead of running."""
        self._console_logger.debug("Closing %s...", LogFormat.entity("DependencyContainer"))
        if self._executor is not None:
            try:
                await self._executor.close()
            except (OSError, RuntimeError, asyncio.CancelledError) as e:
                self._console_logger.warning("Failed to close bridge executor: %s", e)
        self._console_logger.debug("%s closed.", LogFormat.entity("DependencyContainer"))

    def shutdown(self) -> None:
        """Clean up non-async resources and stop services."""
        self._console_logger.debug("Shutting down %s...", LogFormat.entity("DependencyContainer"))

        if self._listener is not None:
            self._console_logger.debug("Stopping logging listener...")
            self._listener.stop()
            self._listener = None
        self._console_logger.debug("%s shutdown complete.", LogFormat.entity("DependencyContainer"))

    def _log_scripts_dir(self, scripts_dir: str, config: AppConfig) -> None:
        """Log the directory used for oversized temporary scripts."""
        short_path = shorten_path(scripts_dir, config)
        if not Path(scripts_dir).is_dir():
            self._console_logger.warning("Temporary scripts directory does not exist: %s", short_path)
            return
        run_type = "DRY RUN - " if self._dry_run else ""
        self._console_logger.debug("%sTemporary scripts: %s", run_type, short_path)

    def _load_config(self) -> AppConfig:
        """Load and validate application configuration.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If there's an error parsing the YAML
            RuntimeError: For any other errors during loading

        """
        try:
            config = load_config(self._config_path)
        except FileNotFoundError as e:
            short_path = Path(self._config_path).name
            self._error_logger.exception("Configuration file not found: %s", short_path)
            msg = f"Configuration file not found: {self._config_path}"
            raise FileNotFoundError(msg) from e
        except yaml.YAMLError as e:
            short_path = Path(self._config_path).name
            self._error_logger.exception("Invalid YAML in config file %s: %s", short_path, e)
            raise
        self._console_logger.info("Configuration: [cyan]%s[/cyan]", Path(self._config_path).name)
        return config
