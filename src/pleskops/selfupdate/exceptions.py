"""Custom exceptions for the self-update module."""


class UpdateError(Exception):
    """Base exception for all self-update failures."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message


class TransportUnavailableError(UpdateError):
    """Raised when no HTTP transport can handle the update source."""


class DownloadFailedError(UpdateError):
    """Raised when fetching the new version fails."""


class InvalidArtifactError(UpdateError):
    """Raised when the downloaded file is empty or not a script."""


class BackupFailedError(UpdateError):
    """Raised when the running script cannot be backed up."""


class SwapFailedError(UpdateError):
    """Raised when the new version cannot be moved into place."""
