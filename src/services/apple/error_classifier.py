"""Translation of osascript failures into the bridge error taxonomy.

osascript reports script errors on stderr as
``<range>: execution error: <message> (<code>)``. The numeric code decides
the taxonomy member; failures without a code become ``ExecutionFailedError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.exceptions import (
    ExecutionFailedError,
    MusicBridgeError,
    ObjectNotFoundError,
    PermissionDeniedError,
    TargetAppNotRunningError,
)

ERROR_CODE_TABLE: dict[int, type[MusicBridgeError]] = {
    -1743: PermissionDeniedError,  # errAEEventNotPermitted
    -10004: PermissionDeniedError,  # errAEPrivilegeError
    -600: TargetAppNotRunningError,  # procNotFound
    -10810: TargetAppNotRunningError,  # kLSUnknownErr, launch failed
    -1728: ObjectNotFoundError,  # errAENoSuchObject
}

_TRAILING_CODE = re.compile(r"\((-?\d+)\)\s*$")
_EXECUTION_PREFIX = re.compile(r"^\s*\d+:\d+:\s*(?:execution|syntax) error:\s*")


@dataclass(frozen=True, slots=True)
class ScriptOutcome:
    """What a finished (or abandoned) osascript process reported."""

    stdout: str = ""
    stderr: str = ""
    returncode: int | None = 0
    timed_out: bool = False
    timeout_seconds: float | None = None

    @property
    def succeeded(self) -> bool:
        """Exit status zero and no timeout."""
        return self.returncode == 0 and not self.timed_out


class ErrorClassifier:
    """Maps failed outcomes to ``MusicBridgeError`` subclasses."""

    @staticmethod
    def parse_error(stderr: str) -> tuple[str, int | None]:
        """Split osascript stderr into ``(message, code)``.

        Example:
            ``12:40: execution error: Music got an error: nope (-1728)``
            gives ``("Music got an error: nope", -1728)``.

        """
        text = stderr.strip()
        code: int | None = None
        if match := _TRAILING_CODE.search(text):
            code = int(match.group(1))
            text = text[: match.start()].rstrip()
        text = _EXECUTION_PREFIX.sub("", text)
        return text, code

    def classify_code(self, code: int | None, message: str) -> MusicBridgeError:
        """Build the taxonomy member for a numeric code.

        Documented codes keep their default user-facing message; the raw
        message is kept on ``ExecutionFailedError`` for anything else.
        """
        error_class = ERROR_CODE_TABLE.get(code) if code is not None else None
        if error_class is None:
            return ExecutionFailedError(message or "unknown error", code)
        return error_class(code=code)

    def classify(self, outcome: ScriptOutcome) -> MusicBridgeError:
        """Classify a failed outcome.

        Args:
            outcome: Outcome whose ``succeeded`` is False

        Returns:
            The error to raise for this outcome

        """
        if outcome.timed_out:
            return ExecutionFailedError(f"timed out after {outcome.timeout_seconds or 0:g}s")
        message, code = self.parse_error(outcome.stderr)
        if not message and code is None:
            message = f"osascript exited with return code {outcome.returncode}"
        return self.classify_code(code, message)

    def classify_exception(self, error: BaseException) -> MusicBridgeError:
        """Classify a failure to run osascript at all (spawn or I/O error)."""
        return ExecutionFailedError(str(error) or type(error).__name__)
