"""Persistence of the last update-check time."""

import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol


class CheckTimestampStore(Protocol):
    """Where the time of the last remote update check is kept."""

    def last_checked_at(self) -> float | None:
        """Return the epoch time of the last check, or None if never checked."""
        ...

    def record_check(self) -> None:
        """Record that a check happened now."""
        ...


class MarkerFileTimestampStore:
    """Keeps the last check time as the modification time of a marker file.

    The content of the file is irrelevant; only its mtime is read.
    """

    def __init__(self, marker_file: Path) -> None:
        """Initialize the store.

        Args:
            marker_file: Path of the marker file

        """
        self.marker_file = marker_file

    @classmethod
    def for_task(cls, task_name: str) -> "MarkerFileTimestampStore":
        """Create the default store for a task below the temp directory."""
        return cls(Path(tempfile.gettempdir()) / f".pleskops_{task_name}_update_check")

    def last_checked_at(self) -> float | None:
        """Return the marker's mtime, or None if it does not exist."""
        try:
            return self.marker_file.stat().st_mtime
        except OSError:
            return None

    def record_check(self) -> None:
        """Touch the marker file.

        A marker that cannot be written only means the next run checks again.
        """
        try:
            self.marker_file.touch()
        except OSError:
            return


class InMemoryTimestampStore:
    """Timestamp store kept in process memory."""

    def __init__(
        self,
        checked_at: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store with an optional initial check time."""
        self.checked_at = checked_at
        self._now = clock

    def last_checked_at(self) -> float | None:
        """Return the stored check time."""
        return self.checked_at

    def record_check(self) -> None:
        """Store the current time."""
        self.checked_at = self._now()


def should_check_for_update(
    store: CheckTimestampStore,
    interval_seconds: float,
    now: float | None = None,
) -> bool:
    """Decide whether an automatic update check is due.

    Args:
        store: Where the last check time is kept
        interval_seconds: Minimum time between two automatic checks
        now: Current epoch time, defaults to ``time.time()``

    Returns:
        True if no check was recorded yet or the interval has elapsed

    """
    last_checked = store.last_checked_at()
    if last_checked is None:
        return True
    current_time = time.time() if now is None else now
    return current_time - last_checked >= interval_seconds
