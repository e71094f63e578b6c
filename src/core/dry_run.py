"""Dry Run Module.

Wraps the bridge executor so that reads still reach Music.app while every
command that would change the library is only logged and recorded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.models.protocols import BridgeExecutorProtocol

if TYPE_CHECKING:
    import logging

    from services.apple.result_decoder import DecodedValue
    from services.apple.script_builder import ScriptCommand


class DryRunBridgeExecutor(BridgeExecutorProtocol):
    """Bridge executor that logs mutating commands instead of running them."""

    def __init__(
        self,
        real_executor: BridgeExecutorProtocol,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
    ) -> None:
        """Initialize the DryRunBridgeExecutor.

        Args:
            real_executor: Executor that read commands are delegated to
            console_logger: Logger for console output
            error_logger: Logger for error output

        """
        self._real_executor = real_executor
        self.console_logger = console_logger
        self.error_logger = error_logger
        self.actions: list[dict[str, Any]] = []

    async def start(self) -> None:
        """Start the real executor (reads still need it)."""
        await self._real_executor.start()

    async def run(self, command: ScriptCommand) -> DecodedValue:
        """Delegate reads; log and record mutating commands.

        Returns:
            The real result for reads, ``None`` for skipped mutations

        """
        if not command.mutating:
            return await self._real_executor.run(command)

        self.console_logger.info("DRY-RUN: Would run %s", command.display)
        self.actions.append({"command": command.label, "summary": command.summary})
        return None

    async def close(self) -> None:
        """Close the real executor."""
        await self._real_executor.close()

    def get_actions(self) -> list[dict[str, Any]]:
        """Get the list of actions recorded during the dry run."""
        return self.actions
