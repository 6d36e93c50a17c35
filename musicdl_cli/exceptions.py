"""
Defines custom exceptions for the application to allow for more specific error handling.

Every failure that crosses the boundary between a background task and the
wizard controller is one of these types, carried as a value in a completion
message rather than raised into the event loop.
"""


class MusicDlError(Exception):
    """Base exception for all application-specific errors."""


class DependencyMissingError(MusicDlError):
    """Raised when a required external tool (yt-dlp, ffmpeg) cannot be found."""


class ToolTimeoutError(MusicDlError):
    """Raised when an external tool or remote lookup exceeds its time budget."""

    def __init__(self, operation: str, seconds: float | None = None):
        self.operation = operation
        self.seconds = seconds
        if seconds is None:
            super().__init__(f"{operation} timed out")
        else:
            super().__init__(f"{operation} timed out ({seconds:g}s)")


class LookupFailedError(MusicDlError):
    """Raised on a network or parse failure from a search or metadata provider."""


class EmptyResultError(MusicDlError):
    """Raised when a lookup succeeded but produced no usable items."""


class ExternalToolError(MusicDlError):
    """
    Raised when audio extraction or the final merge fails.

    The tool's combined output is kept verbatim so it can be shown to the user.
    """

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(f"{message}\n{output}".rstrip() if output else message)


class FileIntegrityError(ExternalToolError):
    """Raised when a merged file fails a post-merge integrity check."""


class ConfigurationError(MusicDlError):
    """Raised for issues related to configuration loading or validation."""
