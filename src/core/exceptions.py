"""Core exceptions for configuration and Music.app automation.

The bridge taxonomy is deliberately small: every failure surfaced by the
automation layer is one of the ``MusicBridgeError`` subclasses below, and
its ``str()`` is a single sentence that can be shown to the user as-is.
"""


class ConfigurationError(Exception):
    """Raised when configuration loading or parsing fails."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        """Initialize the configuration error.

        Args:
            message: Error description
            config_path: Path to the config file that caused the error

        """
        super().__init__(message)
        self.config_path = config_path


class MusicBridgeError(Exception):
    """Base class for every failure reported by the automation bridge."""

    default_message = "Music.app automation failed."

    def __init__(self, message: str | None = None, code: int | None = None) -> None:
        """Initialize the bridge error.

        Args:
            message: Human-readable description (class default when omitted)
            code: Numeric AppleScript error code, when one was reported

        """
        super().__init__(message or self.default_message)
        self.code = code


class PermissionDeniedError(MusicBridgeError):
    """The user has not granted automation access to Music.app."""

    default_message = (
        "Permission denied. Allow automation access to Music in "
        "System Settings > Privacy & Security > Automation."
    )


class TargetAppNotRunningError(MusicBridgeError):
    """Music.app is not running and could not be reached."""

    default_message = "Music.app is not running. Launch Music and try again."


class ObjectNotFoundError(MusicBridgeError):
    """The referenced playlist, folder or track does not exist."""

    default_message = "The requested item was not found in the Music library."


class InvalidResponseError(MusicBridgeError):
    """Music.app answered, but not with the structure that was expected."""

    default_message = "Received an invalid response from Music.app."


class ExecutionFailedError(MusicBridgeError):
    """Any other script failure, carrying the underlying message."""

    def __init__(self, message: str, code: int | None = None) -> None:
        """Initialize with the raw failure message.

        Args:
            message: Message reported by osascript or by the executor
            code: Numeric AppleScript error code, when one was reported

        """
        super().__init__(f"Failed to execute AppleScript: {message}", code)
        self.raw_message = message
