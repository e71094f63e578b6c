"""Logging setup: Rich console output plus queued, run-tracked file logs.

1.  **Rich Console Output:** ``console_logger`` writes through ``RichHandler`` on
    one shared ``Console`` so spinners and log lines do not interleave.
2.  **Non-Blocking File Logging:** ``main_logger``, ``error_logger`` and the
    ``config`` logger feed a ``QueueHandler``; a ``QueueListener`` thread writes
    the file.
3.  **Run Tracking:** every run is framed by a header and footer, and the log
    file is trimmed to the most recent ``logging.max_runs`` runs on close.
4.  **Compact Formatting:** abbreviated levels and shortened paths in files.
"""

from __future__ import annotations

import logging
import os
import queue
import re
import sys
import time
import traceback
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from rich.status import Status

    from core.models.config_models import AppConfig

__all__ = [
    "LEVEL_ABBREV",
    "CompactFormatter",
    "LogFormat",
    "LoggerFilter",
    "RunHandler",
    "RunTrackingHandler",
    "SafeQueueListener",
    "create_console_logger",
    "create_fallback_loggers",
    "ensure_directory",
    "get_full_log_path",
    "get_log_levels_from_config",
    "get_loggers",
    "get_shared_console",
    "setup_queue_logging",
    "shorten_path",
    "spinner",
]

_console_holder: dict[str, Console] = {}

RESET = "\033[0m"
BLUE = "\033[34m"
RUN_SEPARATOR = "=" * 80
RUN_MARKER = "▶"

LEVEL_ABBREV = {
    "DEBUG": "D",
    "INFO": "I",
    "WARNING": "W",
    "ERROR": "E",
    "CRITICAL": "C",
}

_HEADER_SEPARATOR = re.compile(r"^(\x1b\[\d+m)?={80}(\x1b\[0m)?$")
_HEADER_LINE = re.compile(rf"^(\x1b\[\d+m)?{RUN_MARKER} NEW RUN:")


def get_shared_console() -> Console:
    """Get or create the shared Rich console instance."""
    if "console" not in _console_holder:
        _console_holder["console"] = Console()
    return _console_holder["console"]


class SafeQueueListener(QueueListener):
    """A QueueListener whose stop() is safe to call more than once."""

    def stop(self) -> None:
        """Stop the listener thread if it is still running."""
        try:
            if getattr(self, "_thread", None) is not None:
                super().stop()
        except (AttributeError, RuntimeError, TypeError) as e:
            print(f"Warning: Error stopping QueueListener: {e}", file=sys.stderr)


class LogFormat:
    """Rich markup helpers for consistent log formatting.

    Example:
        from core.logger import LogFormat as LF
        logger.info("Moved %s playlists into %s", LF.number(3), LF.entity("2024"))
    """

    @staticmethod
    def entity(name: str) -> str:
        """Highlight a service, folder or playlist name (yellow)."""
        return f"[yellow]{name}[/yellow]"

    @staticmethod
    def number(value: float) -> str:
        """Highlight a count or other number."""
        return f"[bright_white]{value}[/bright_white]"

    @staticmethod
    def success(text: str) -> str:
        """Green success status."""
        return f"[green]{text}[/green]"

    @staticmethod
    def error(text: str) -> str:
        """Red error status."""
        return f"[red]{text}[/red]"


@asynccontextmanager
async def spinner(message: str, console: Console | None = None) -> AsyncGenerator[Status]:
    """Show an indeterminate spinner while a long Music.app call runs.

    Args:
        message: Message to display next to the spinner
        console: Optional Rich Console (the shared console by default)

    Yields:
        Rich Status object that can be used to update the message

    """
    _console = console or get_shared_console()
    with _console.status(f"[cyan]{message}[/cyan]") as status:
        yield status


class LoggerFilter:
    """Filter that only allows records from specific logger names (and their children)."""

    def __init__(self, allowed_loggers: list[str]) -> None:
        """Initialize filter with allowed logger names."""
        self.allowed_loggers = set(allowed_loggers)

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record comes from an allowed logger."""
        return any(record.name == name or record.name.startswith(f"{name}.") for name in self.allowed_loggers)


class RunHandler:
    """Formats run headers/footers and trims log files to the last N runs."""

    def __init__(self, max_runs: int = 5) -> None:
        """Initialize the RunHandler.

        Args:
            max_runs: Maximum number of runs to keep in log files

        """
        self.max_runs = max_runs
        self.run_start_time = time.monotonic()

    @staticmethod
    def format_run_header(logger_name: str) -> str:
        """Header written before the first record of a run."""
        now_str = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        return f"\n\n{BLUE}{RUN_SEPARATOR}{RESET}\n{RUN_MARKER} NEW RUN: {logger_name} - {now_str}\n{BLUE}{RUN_SEPARATOR}{RESET}\n\n"

    def format_run_footer(self, logger_name: str) -> str:
        """Footer written when the handler closes, with the run duration."""
        elapsed = time.monotonic() - self.run_start_time
        return f"\n\n{BLUE}{RUN_SEPARATOR}{RESET}\n{RUN_MARKER} END RUN: {logger_name} - Total time: {elapsed:.2f}s\n{BLUE}{RUN_SEPARATOR}{RESET}\n\n"

    def trim_log_to_max_runs(self, log_file: str) -> None:
        """Keep only the most recent ``max_runs`` runs in ``log_file``."""
        path = Path(log_file)
        if not path.exists() or self.max_runs <= 0:
            return

        try:
            with path.open(encoding="utf-8", errors="ignore") as f:
                lines = f.readlines()

            header_indices = [
                i
                for i, line in enumerate(lines)
                if _HEADER_SEPARATOR.match(line.strip()) and i + 1 < len(lines) and _HEADER_LINE.match(lines[i + 1].strip())
            ]
            if len(header_indices) <= self.max_runs:
                return

            temp_path = path.with_name(f"{path.name}.tmp")
            with temp_path.open("w", encoding="utf-8") as f:
                f.writelines(lines[header_indices[-self.max_runs] :])
            temp_path.replace(path)
        except OSError as e:
            print(f"Error trimming log file {log_file}: {e}", file=sys.stderr)


def ensure_directory(path: str, error_logger: logging.Logger | None = None) -> None:
    """Create ``path`` (and parents) if it does not exist."""
    try:
        if path and not Path(path).exists():
            Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if error_logger:
            error_logger.exception("Error creating directory %s", path)
        else:
            print(f"ERROR: Error creating directory {path}: {e}", file=sys.stderr)


def get_full_log_path(config: AppConfig, relative_path: str, error_logger: logging.Logger | None = None) -> str:
    """Join ``logs_base_dir`` and ``relative_path``, creating the directories."""
    full_path = Path(config.logs_base_dir) / relative_path
    ensure_directory(str(full_path.parent), error_logger)
    return str(full_path)


def shorten_path(path: str, config: AppConfig | None = None) -> str:
    """Return a short, human-friendly form of ``path``.

    The logs directory becomes ``$LOGS``, the home directory becomes ``~``,
    and any other absolute path collapses to its file name.
    """
    if not path:
        return path or ""

    norm_path = os.path.normpath(path)

    if config is not None:
        logs_dir = str(Path(config.logs_base_dir).resolve())
        if norm_path.startswith(logs_dir):
            relative = str(Path(norm_path).relative_to(logs_dir))
            return "$LOGS" if relative == "." else f"$LOGS{os.sep}{relative}"

    try:
        home_dir = str(Path.home())
    except (OSError, RuntimeError, KeyError):
        home_dir = ""
    if home_dir and norm_path.startswith(home_dir):
        return "~" if norm_path == home_dir else norm_path.replace(home_dir, "~", 1)

    if Path(norm_path).is_absolute() and Path(norm_path).parent.name:
        return Path(norm_path).name
    return norm_path


class CompactFormatter(logging.Formatter):
    """File formatter with one-letter levels and shortened paths."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str = "%H:%M:%S",
        style: Literal["%", "{", "$"] = "%",
        *,
        config: AppConfig | None = None,
    ) -> None:
        """Initialize the CompactFormatter."""
        default_fmt = "%(asctime)s %(levelname)s [%(name)s] %(short_pathname)s:%(lineno)d - %(message)s"
        super().__init__(fmt if fmt is not None else default_fmt, datefmt, style)
        self.config = config

    def format(self, record: logging.LogRecord) -> str:
        """Format with a temporary short path and abbreviated level."""
        original_levelname = record.levelname
        record.short_pathname = shorten_path(getattr(record, "pathname", ""), self.config)
        record.levelname = LEVEL_ABBREV.get(original_levelname, original_levelname[:1])
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname
            del record.short_pathname


class RunTrackingHandler(logging.FileHandler):
    """File handler that frames each run and trims old runs on close."""

    def __init__(
        self,
        filename: str,
        *,
        mode: str = "a",
        encoding: str | None = "utf-8",
        delay: bool = False,
        run_handler: RunHandler | None = None,
    ) -> None:
        """Initialize the handler, creating the log directory if needed."""
        ensure_directory(str(Path(filename).parent))
        super().__init__(filename, mode, encoding, delay)
        self.run_handler = run_handler
        self._header_written = False
        self._closed = False

    def emit(self, record: logging.LogRecord) -> None:
        """Write the run header before the first record, then the record."""
        if self.run_handler and not self._header_written and self.stream:
            try:
                self.stream.write(self.run_handler.format_run_header(record.name))
                self.flush()
            except OSError as header_error:
                print(f"Failed to write log header: {header_error}", file=sys.stderr)
                self.handleError(record)
            self._header_written = True
        if self.stream:
            super().emit(record)

    def close(self) -> None:
        """Write the footer, close the stream, then trim old runs."""
        if self._closed:
            return
        self._closed = True

        try:
            if self.run_handler and self._header_written and self.stream:
                self.stream.write(self.run_handler.format_run_footer("Logger"))
                self.flush()
        except (OSError, AttributeError) as e:
            print(f"ERROR: Failed to write log footer for {self.baseFilename}: {e}", file=sys.stderr)
        finally:
            super().close()
            if self.run_handler and self.run_handler.max_runs > 0:
                self.run_handler.trim_log_to_max_runs(self.baseFilename)


def get_log_levels_from_config(config: AppConfig) -> dict[str, int]:
    """Map the ``logging.levels`` section to ``logging`` level constants."""
    levels = config.logging.levels
    return {
        "console": logging.getLevelNamesMapping().get(str(levels.console), logging.INFO),
        "main_file": logging.getLevelNamesMapping().get(str(levels.main_file), logging.INFO),
    }


def create_console_logger(levels: dict[str, int]) -> logging.Logger:
    """Create the ``console_logger`` with a RichHandler on the shared console."""
    console_logger = logging.getLogger("console_logger")
    if not console_logger.handlers:
        handler = RichHandler(
            level=levels["console"],
            console=get_shared_console(),
            show_path=False,
            enable_link_path=False,
            log_time_format="%H:%M:%S",
            markup=True,
        )
        console_logger.addHandler(handler)
        console_logger.setLevel(levels["console"])
        console_logger.propagate = False
    return console_logger


def setup_queue_logging(
    config: AppConfig,
    levels: dict[str, int],
    main_log_file: str,
) -> tuple[logging.Logger, logging.Logger, SafeQueueListener]:
    """Attach ``main_logger``, ``error_logger`` and ``config`` to a queued run-tracked file."""
    run_handler = RunHandler(config.logging.max_runs)
    file_formatter = CompactFormatter(datefmt="%Y-%m-%d %H:%M:%S", config=config)

    main_handler = RunTrackingHandler(main_log_file, run_handler=run_handler)
    main_handler.setFormatter(file_formatter)
    main_handler.setLevel(levels["main_file"])
    main_handler.addFilter(LoggerFilter(["main_logger", "error_logger", "config"]))

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)
    listener = SafeQueueListener(log_queue, main_handler, respect_handler_level=True)
    listener.start()

    queue_handler = QueueHandler(log_queue)

    def setup_logger(logger_name: str) -> logging.Logger:
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            logger.addHandler(queue_handler)
            logger.setLevel(levels["main_file"])
            logger.propagate = False
        return logger

    main_logger = setup_logger("main_logger")
    error_logger = setup_logger("error_logger")
    setup_logger("config")
    return main_logger, error_logger, listener


def get_loggers(config: AppConfig) -> tuple[logging.Logger, logging.Logger, SafeQueueListener | None]:
    """Create the console and error loggers.

    Never raises: on setup failure, basic stream loggers are returned
    instead and the listener is ``None``.

    Returns:
        Tuple of (console_logger, error_logger, listener)

    """
    try:
        levels = get_log_levels_from_config(config)
        console_logger = create_console_logger(levels)
        main_log_file = get_full_log_path(config, config.logging.main_log_file)
        _, error_logger, listener = setup_queue_logging(config, levels, main_log_file)
    except (OSError, ValueError, AttributeError, TypeError) as e:
        return create_fallback_loggers(e)

    # errors also reach the console
    if not any(isinstance(h, RichHandler) for h in error_logger.handlers):
        error_logger.addHandler(console_logger.handlers[0])

    console_logger.debug("Logging setup with QueueListener and RichHandler complete.")
    return console_logger, error_logger, listener


def create_fallback_loggers(e: Exception) -> tuple[logging.Logger, logging.Logger, None]:
    """Configure basic stream logging after a setup failure."""
    print(f"FATAL ERROR: Failed to configure logging: {e}", file=sys.stderr)
    traceback.print_exc(file=sys.stderr)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    logging.critical("Fallback basic logging configured due to error: %s", e)

    console_fallback = logging.getLogger("console_fallback")
    error_fallback = logging.getLogger("error_fallback")
    if not console_fallback.handlers:
        console_fallback.addHandler(logging.StreamHandler(sys.stdout))
    if not error_fallback.handlers:
        error_fallback.addHandler(logging.StreamHandler(sys.stderr))
    return console_fallback, error_fallback, None
