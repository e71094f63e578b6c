"""AppleScript string escaping and template validation.

User-supplied names are never validated against patterns: they are escaped
and embedded as string literals, so any name can be used. Pattern validation
applies only to the fixed template skeletons, which must never reach outside
Music.app.
"""

from __future__ import annotations

import logging
import re
from typing import Any

DANGEROUS_APPLESCRIPT_PATTERNS = [
    r"do\s+shell\s+script",  # Shell execution
    r"tell\s+application\s+\"Finder\"",  # File system access
    r"tell\s+application\s+\"System\s+Events\"",  # System manipulation
    r"load\s+script",  # External script loading
    r"store\s+script",  # Script writing
    r"choose\s+file",  # File system browsing
    r"choose\s+folder",  # Directory browsing
    r"open\s+location",  # URL/file opening
    r"keystroke|key\s+code",  # Keyboard input simulation
    r"system\s+attribute",  # System information access
]

MAX_SCRIPT_SIZE = 10000


class AppleScriptSanitizationError(Exception):
    """Raised when a template skeleton fails validation."""

    def __init__(self, message: str, dangerous_pattern: str | None = None) -> None:
        """Initialize the sanitization error.

        Args:
            message: Error message describing the violation
            dangerous_pattern: The specific text that triggered the error

        """
        super().__init__(message)
        self.dangerous_pattern = dangerous_pattern


class AppleScriptSanitizer:
    """Escapes interpolated strings and validates template skeletons."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize the sanitizer.

        Args:
            logger: Optional logger for escaping and validation events

        """
        self.logger = logger or logging.getLogger(__name__)
        self._compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in DANGEROUS_APPLESCRIPT_PATTERNS]

    def sanitize_string(self, value: Any) -> str:
        """Escape a value for embedding inside an AppleScript string literal.

        Only backslash and double quote are escaped. Backslashes go first so
        the backslashes added in front of quotes are not doubled again.
        Control characters pass through unchanged.

        Args:
            value: The string value to escape

        Returns:
            str: The escaped string (without surrounding quotes)

        Raises:
            ValueError: If the value is None
            TypeError: If the value is not a string

        """
        if value is None:
            msg = "Cannot sanitize None value"
            raise ValueError(msg)

        if not isinstance(value, str):
            msg = f"Expected string, got {type(value).__name__}"
            raise TypeError(msg)

        sanitized = value.replace("\\", "\\\\").replace('"', '\\"')

        if value != sanitized:
            self.logger.debug(
                "Escaped AppleScript string: %d characters, %d added",
                len(value),
                len(sanitized) - len(value),
            )

        return sanitized

    def quote(self, value: Any) -> str:
        """Return ``value`` as a complete, escaped AppleScript string literal."""
        return f'"{self.sanitize_string(value)}"'

    def validate_script_code(self, script_code: str | None) -> None:
        """Validate a template skeleton.

        Args:
            script_code: Rendered template with placeholder arguments

        Raises:
            AppleScriptSanitizationError: If a dangerous pattern is found or the script is too large
            ValueError: If script_code is empty

        """
        if not script_code:
            msg = "Script code must be a non-empty string"
            raise ValueError(msg)

        normalized_code = re.sub(r"\s+", " ", script_code.strip())

        for pattern in self._compiled_patterns:
            if match := pattern.search(normalized_code):
                dangerous_text = match.group()
                error_msg = f"Dangerous AppleScript pattern detected: '{dangerous_text}'"
                self.logger.error("Security violation: %s in code: %s", error_msg, script_code[:100])
                raise AppleScriptSanitizationError(error_msg, dangerous_text)

        if len(script_code) > MAX_SCRIPT_SIZE:
            error_msg = f"AppleScript code too large: {len(script_code)} characters"
            self.logger.error("Security violation: %s", error_msg)
            raise AppleScriptSanitizationError(error_msg)

        self.logger.debug("AppleScript template passed validation: %d characters", len(script_code))
