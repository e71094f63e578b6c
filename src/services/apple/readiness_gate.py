"""Launch-and-wait gate run before every Music.app command."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from core.logger import LogFormat
from services.apple.sanitizer import AppleScriptSanitizer

if TYPE_CHECKING:
    from core.models.config_models import ReadinessConfig
    from services.apple.applescript_executor import AppleScriptExecutor

PROBE_LABEL = "probe_running"
LAUNCH_LABEL = "launch_music"


class ReadinessGate:
    """Makes sure Music.app is running before a command is sent.

    If the app is not running, a launch by bundle identifier is requested
    (idempotent, fire-and-forget) and the running state is polled at a fixed
    interval for a bounded number of iterations. The gate never fails: when
    the app is still not up, the command goes out anyway and its own error
    reports the condition.
    """

    def __init__(
        self,
        app_id: str,
        readiness: ReadinessConfig,
        runner: AppleScriptExecutor,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            app_id: Bundle identifier of the target application
            readiness: Polling interval, poll count and launch timeout
            runner: Subprocess runner used for the probe and the launch
            console_logger: Logger for progress messages
            error_logger: Logger for failures

        """
        self.app_id = app_id
        self.readiness = readiness
        self.runner = runner
        self.console_logger = console_logger or logging.getLogger(__name__)
        self.error_logger = error_logger or logging.getLogger(__name__)
        self._probe_script = f"application id {AppleScriptSanitizer(self.console_logger).quote(app_id)} is running"

    async def is_running(self) -> bool:
        """Probe whether the target process is running."""
        try:
            outcome = await self.runner.run_script(
                self._probe_script,
                PROBE_LABEL,
                self.readiness.launch_timeout_seconds,
            )
        except OSError as e:
            self.error_logger.warning("Could not probe %s: %s", self.app_id, e)
            return False
        return outcome.succeeded and outcome.stdout.strip() == "true"

    async def request_launch(self) -> None:
        """Ask the OS to launch the app by bundle identifier."""
        self.console_logger.info("Launching %s...", LogFormat.entity(self.app_id))
        try:
            outcome = await self.runner.execute(["open", "-b", self.app_id], LAUNCH_LABEL, self.readiness.launch_timeout_seconds)
        except OSError as e:
            self.error_logger.warning("Launch request for %s failed: %s", self.app_id, e)
            return
        if not outcome.succeeded:
            self.error_logger.warning("Launch request for %s failed: %s", self.app_id, outcome.stderr or outcome.returncode)

    async def ensure_ready(self) -> bool:
        """Wait until the app is running, launching it first if needed.

        Returns:
            True if the app was observed running, False once the poll budget is spent

        """
        if await self.is_running():
            return True

        await self.request_launch()
        for _ in range(self.readiness.max_polls):
            await asyncio.sleep(self.readiness.poll_interval_seconds)
            if await self.is_running():
                self.console_logger.info("%s is %s", LogFormat.entity(self.app_id), LogFormat.success("running"))
                return True

        self.error_logger.warning(
            "%s still not running after %d polls; sending command anyway",
            self.app_id,
            self.readiness.max_polls,
        )
        return False
