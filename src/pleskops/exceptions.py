"""Common exceptions used across the pleskops library."""


class LockError(Exception):
    """Exception raised when the instance lock file cannot be written."""


class ConfigurationError(Exception):
    """Exception raised when settings are missing or invalid."""


class TaskError(Exception):
    """Exception raised when a scheduled task cannot start its work at all."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message
