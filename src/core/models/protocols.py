"""Service Protocol Definitions.

Protocols decouple the library services from the concrete bridge so that the
real executor, the dry-run wrapper and test doubles are interchangeable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from services.apple.result_decoder import DecodedValue
    from services.apple.script_builder import ScriptCommand


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class BridgeExecutorProtocol(Protocol):
    """Protocol for anything that can run a built ``ScriptCommand``."""

    async def start(self) -> None:
        """Start accepting commands."""
        ...

    async def run(self, command: ScriptCommand) -> DecodedValue:
        """Execute a command and return its decoded result.

        Args:
            command: Command produced by ``ScriptBuilder``

        Returns:
            Decoded response: ``str``, ``list`` or ``None`` for no value

        Raises:
            MusicBridgeError: One of the taxonomy members on failure

        """
        ...

    async def close(self) -> None:
        """Stop accepting commands and release the worker."""
        ...
