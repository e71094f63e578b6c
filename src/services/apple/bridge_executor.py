"""Serialized command channel to Music.app.

All commands go through one worker task that drains a FIFO queue, so at most
one osascript process talks to Music.app at any time. Each command moves
through ``BUILDING -> AWAITING_READINESS -> EXECUTING -> DECODING`` (or
``CLASSIFYING`` on failure) and back to ``IDLE``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from core.exceptions import ExecutionFailedError, InvalidResponseError
from core.logger import LogFormat
from services.apple.result_decoder import DecodedValue, ResultDecodeError

if TYPE_CHECKING:
    from collections.abc import Callable

    from core.models.config_models import AppleScriptTimeoutsConfig, ReadinessConfig
    from services.apple.applescript_executor import AppleScriptExecutor
    from services.apple.error_classifier import ErrorClassifier
    from services.apple.readiness_gate import ReadinessGate
    from services.apple.result_decoder import ResultDecoder
    from services.apple.script_builder import ScriptCommand

    BusyWindowObserver = Callable[[str, float, float], None]


class BridgeState(StrEnum):
    """Phase of the command currently occupying the bridge."""

    IDLE = "idle"
    BUILDING = "building"
    AWAITING_READINESS = "awaiting_readiness"
    EXECUTING = "executing"
    DECODING = "decoding"
    CLASSIFYING = "classifying"


@dataclass(slots=True)
class _PendingCommand:
    command: ScriptCommand
    future: asyncio.Future[DecodedValue]


class BridgeExecutor:
    """Runs ``ScriptCommand`` objects one at a time, in arrival order.

    Callers may await ``run()`` concurrently; they are served FIFO. A caller
    cancelled before its command starts is skipped. A command already running
    is never interrupted: its own script timeout bounds it.
    """

    def __init__(
        self,
        runner: AppleScriptExecutor,
        gate: ReadinessGate,
        decoder: ResultDecoder,
        classifier: ErrorClassifier,
        timeouts: AppleScriptTimeoutsConfig,
        readiness: ReadinessConfig,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
        observer: BusyWindowObserver | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            runner: osascript subprocess runner
            gate: Readiness gate awaited before each command
            decoder: Source-form result decoder
            classifier: Failure classifier
            timeouts: Timeout configuration (for the process grace period)
            readiness: Readiness configuration (for the in-script wait budget)
            console_logger: Logger for progress messages
            error_logger: Logger for failures
            observer: Optional callback receiving ``(label, started, finished)``
                for every command, in event-loop time

        """
        self.runner = runner
        self.gate = gate
        self.decoder = decoder
        self.classifier = classifier
        self.timeouts = timeouts
        self.readiness = readiness
        self.console_logger = console_logger or logging.getLogger(__name__)
        self.error_logger = error_logger or logging.getLogger(__name__)
        self.observer = observer
        self._state = BridgeState.IDLE
        self._queue: asyncio.Queue[_PendingCommand] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> BridgeState:
        """Current phase of the bridge."""
        return self._state

    @property
    def pending(self) -> int:
        """Number of commands waiting behind the current one."""
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Start the worker task (idempotent)."""
        if self._closed:
            msg = "BridgeExecutor is closed"
            raise RuntimeError(msg)
        if self._worker is None or self._worker.done():
            self._queue = asyncio.Queue()
            self._worker = asyncio.create_task(self._drain(), name="music-bridge-worker")
            self.console_logger.debug("%s worker started", LogFormat.entity("BridgeExecutor"))

    async def run(self, command: ScriptCommand) -> DecodedValue:
        """Queue a command and wait for its decoded result.

        Args:
            command: Command produced by ``ScriptBuilder``

        Returns:
            Decoded response, ``None`` when the command produced no value

        Raises:
            MusicBridgeError: Taxonomy member describing the failure

        """
        await self.start()
        if self._queue is None:
            msg = "BridgeExecutor queue not initialized"
            raise RuntimeError(msg)
        future: asyncio.Future[DecodedValue] = asyncio.get_running_loop().create_future()
        await self._queue.put(_PendingCommand(command, future))
        return await future

    async def close(self) -> None:
        """Stop the worker and fail any commands still queued."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        if self._queue is not None:
            while not self._queue.empty():
                pending = self._queue.get_nowait()
                if not pending.future.done():
                    pending.future.set_exception(ExecutionFailedError("bridge closed before the command ran"))
        self._state = BridgeState.IDLE

    async def _drain(self) -> None:
        if self._queue is None:
            return
        while True:
            pending = await self._queue.get()
            try:
                if pending.future.done():
                    self.console_logger.debug("Skipping cancelled command %s", pending.command.label)
                    continue
                try:
                    result = await self._execute(pending.command)
                except asyncio.CancelledError:
                    if not pending.future.done():
                        pending.future.set_exception(ExecutionFailedError("bridge closed while the command was running"))
                    raise
                except Exception as e:  # delivered to the waiting caller
                    if not pending.future.done():
                        pending.future.set_exception(e)
                else:
                    if not pending.future.done():
                        pending.future.set_result(result)
            finally:
                self._queue.task_done()

    def _process_timeout(self, command: ScriptCommand) -> float:
        in_script_wait = self.readiness.max_polls * self.readiness.poll_interval_seconds
        return command.timeout_seconds + in_script_wait + self.timeouts.process_grace_seconds

    async def _execute(self, command: ScriptCommand) -> DecodedValue:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            self._state = BridgeState.BUILDING
            self.console_logger.debug("▷ %s", command.display)

            self._state = BridgeState.AWAITING_READINESS
            await self.gate.ensure_ready()

            self._state = BridgeState.EXECUTING
            try:
                outcome = await self.runner.run_script(command.source, command.display, self._process_timeout(command))
            except (OSError, subprocess.SubprocessError, UnicodeDecodeError) as e:
                self._state = BridgeState.CLASSIFYING
                raise self.classifier.classify_exception(e) from e

            if not outcome.succeeded:
                self._state = BridgeState.CLASSIFYING
                error = self.classifier.classify(outcome)
                self.error_logger.error("⊗ %s: %s", command.display, error)
                raise error

            self._state = BridgeState.DECODING
            return self._decode(command, outcome.stdout)
        finally:
            self._state = BridgeState.IDLE
            if self.observer is not None:
                self.observer(command.label, started, loop.time())

    def _decode(self, command: ScriptCommand, stdout: str) -> DecodedValue:
        try:
            value = self.decoder.decode_output(stdout)
        except ResultDecodeError as e:
            if not command.expects_output:
                # the command itself succeeded; only its echo is unreadable
                self.console_logger.debug("Ignoring unreadable output of %s: %s", command.label, e)
                return None
            self.error_logger.warning("⊗ %s returned unreadable output: %s", command.label, e)
            raise InvalidResponseError() from e

        if value is None and command.expects_output:
            raise InvalidResponseError()
        return value
