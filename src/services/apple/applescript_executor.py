"""AppleScript subprocess execution module.

This module handles the low-level subprocess execution for osascript,
including timeout handling, process cleanup, and temp file management.
It reports what the process did; deciding what that means is left to the
bridge executor.
"""

from __future__ import annotations

import asyncio
import asyncio.subprocess
import subprocess
import tempfile
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from core.apple_script_names import LISTING_COMMANDS
from services.apple.error_classifier import ScriptOutcome

if TYPE_CHECKING:
    import logging


RESULT_PREVIEW_LENGTH = 50  # characters shown when previewing small script results
LOG_PREVIEW_LENGTH = 200  # characters shown when previewing stderr
INLINE_SCRIPT_MAX_BYTES = 16 * 1024  # larger scripts are run from a temp file
PROCESS_EXIT_WAIT_SECONDS = 0.5
PROCESS_KILL_WAIT_SECONDS = 5.0

OSASCRIPT = "osascript"
SOURCE_FORM_FLAGS = ("-s", "s")


class AppleScriptExecutor:
    """Runs osascript and other helper processes.

    This class manages the execution lifecycle including:
    - Running osascript subprocesses with source-form output
    - Handling timeouts and cancellation
    - Process cleanup
    - Temporary file execution for large scripts
    """

    def __init__(
        self,
        scripts_temp_dir: str | None,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
    ) -> None:
        """Initialize the executor.

        Args:
            scripts_temp_dir: Directory for temporary script files (system temp dir when None)
            console_logger: Logger for debug/info messages
            error_logger: Logger for error messages

        """
        self.scripts_temp_dir = scripts_temp_dir or tempfile.gettempdir()
        self.console_logger = console_logger
        self.error_logger = error_logger

    def log_script_success(self, label: str, script_result: str, elapsed: float) -> None:
        """Log successful script execution with appropriate formatting.

        Args:
            label: Script label for logging
            script_result: Script output
            elapsed: Execution time in seconds

        """
        if label.startswith(LISTING_COMMANDS):
            size_kb = len(script_result.encode()) / 1024
            self.console_logger.info("◁ %s (%.1fKB, %.1fs)", label, size_kb, elapsed)
            return

        preview_text = script_result.strip()
        preview = f"{preview_text[:RESULT_PREVIEW_LENGTH]}..." if len(preview_text) > RESULT_PREVIEW_LENGTH else preview_text
        self.console_logger.debug(
            "◁ %s (%dB, %.1fs) %s",
            label,
            len(script_result.encode()),
            elapsed,
            preview,
        )

    async def cleanup_process(self, proc: asyncio.subprocess.Process, label: str) -> None:
        """Clean up process resources.

        Args:
            proc: Process to clean up
            label: Label for logging

        """
        try:
            async with asyncio.timeout(PROCESS_EXIT_WAIT_SECONDS):
                await proc.wait()
            self.console_logger.debug("Process for %s exited naturally and cleaned up", label)
        except TimeoutError:
            try:
                proc.kill()
                async with asyncio.timeout(PROCESS_KILL_WAIT_SECONDS):
                    await proc.wait()
                self.console_logger.debug("Process for %s killed and cleaned up", label)
            except (TimeoutError, ProcessLookupError) as e:
                self.console_logger.warning(
                    "Could not kill or wait for process %s during cleanup: %s",
                    label,
                    str(e),
                )

    async def execute(
        self,
        cmd: list[str],
        label: str,
        timeout_seconds: float,
    ) -> ScriptOutcome:
        """Run a command and report its outcome.

        A non-zero exit status or a timeout is reported in the outcome, not
        raised. Failing to start the process at all raises.

        Args:
            cmd: Command to execute as a list of strings
            label: Label for logging
            timeout_seconds: Timeout in seconds

        Returns:
            ScriptOutcome with decoded stdout/stderr

        Raises:
            OSError: If the process cannot be started
            UnicodeDecodeError: If the output is not valid UTF-8
            asyncio.CancelledError: If the operation was cancelled

        """
        start_time = time.time()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.error_logger.exception("⊗ %s subprocess error: %s", label, e)
            raise

        try:
            async with asyncio.timeout(timeout_seconds):
                stdout, stderr = await proc.communicate()
            elapsed = time.time() - start_time

            stdout_text = stdout.decode() if stdout else ""
            stderr_text = stderr.decode().strip() if stderr else ""

            if proc.returncode == 0:
                if stderr_text:
                    self.console_logger.warning("◁ %s stderr: %s", label, stderr_text[:LOG_PREVIEW_LENGTH])
                self.log_script_success(label, stdout_text, elapsed)
            else:
                self.error_logger.error(
                    "⊗ %s failed with return code %s: %s",
                    label,
                    proc.returncode,
                    stderr_text[:LOG_PREVIEW_LENGTH],
                )
            return ScriptOutcome(stdout=stdout_text, stderr=stderr_text, returncode=proc.returncode)

        except TimeoutError:
            self.error_logger.error("⊗ %s timeout: %ss exceeded", label, timeout_seconds)
            return ScriptOutcome(returncode=None, timed_out=True, timeout_seconds=timeout_seconds)

        except asyncio.CancelledError:
            self.console_logger.info("⊗ %s cancelled", label)
            raise

        except (subprocess.SubprocessError, OSError, UnicodeDecodeError) as e:
            self.error_logger.exception("⊗ %s error during execution: %s", label, e)
            raise

        finally:
            await self.cleanup_process(proc, label)

    def should_use_temp_file(self, script_code: str) -> bool:
        """Determine if a script should be executed via a temporary file.

        Args:
            script_code: The AppleScript code to evaluate

        Returns:
            True if the script is too large to pass with ``-e``

        """
        script_size = len(script_code.encode())
        if script_size > INLINE_SCRIPT_MAX_BYTES:
            self.console_logger.debug(
                "Script size %d exceeds threshold %d, using temp file",
                script_size,
                INLINE_SCRIPT_MAX_BYTES,
            )
            return True
        return False

    async def run_script(self, script_code: str, label: str, timeout_seconds: float) -> ScriptOutcome:
        """Run AppleScript source with osascript, printing results in source form.

        Args:
            script_code: The AppleScript code to execute
            label: Label for logging
            timeout_seconds: Timeout for the osascript process

        Returns:
            ScriptOutcome of the osascript process

        """
        if self.should_use_temp_file(script_code):
            return await self.run_via_temp_file(script_code, label, timeout_seconds)
        return await self.execute([OSASCRIPT, *SOURCE_FORM_FLAGS, "-e", script_code], label, timeout_seconds)

    async def run_via_temp_file(self, script_code: str, label: str, timeout_seconds: float) -> ScriptOutcome:
        """Execute AppleScript from a uniquely named temporary file.

        Args:
            script_code: The AppleScript code to execute
            label: Label for logging
            timeout_seconds: Timeout for the osascript process

        Returns:
            ScriptOutcome of the osascript process

        Raises:
            OSError: If the temporary file cannot be written

        """
        temp_file_path = Path(self.scripts_temp_dir) / f"temp_script_{uuid.uuid4().hex}.applescript"
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _write_script_file, temp_file_path, script_code)
            self.console_logger.debug("Created temporary script file: %s", temp_file_path.name)
            return await self.execute([OSASCRIPT, *SOURCE_FORM_FLAGS, str(temp_file_path)], label, timeout_seconds)
        finally:
            try:
                temp_file_path.unlink(missing_ok=True)
                self.console_logger.debug("Cleaned up temporary file: %s", temp_file_path.name)
            except OSError as e:
                self.console_logger.warning("Could not delete temporary file %s: %s", temp_file_path, e)


def _write_script_file(path: Path, script_code: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(script_code, encoding="utf-8")
