"""PID-file instance locking for scheduled tasks."""

from pleskops.exceptions import LockError

from .lock_manager import LockManager

__all__ = ["LockError", "LockManager"]
