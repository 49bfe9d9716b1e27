"""PID-file instance lock for scheduled tasks.

A held lock is always breakable: when the lock file exists, the process whose
PID it records is killed and the lock is taken over. This suits periodic jobs
where an overrunning previous run should be preempted by the next one. It is
not true mutual exclusion, and a recycled PID can point at an unrelated
process.
"""

import atexit
import logging
import os
import signal
import time
import types
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pleskops.exceptions import LockError

# SIGINT already surfaces as KeyboardInterrupt and unwinds the with-block.
RELEASE_SIGNALS = ("SIGTERM", "SIGHUP")

SignalHandler = Callable[[int, types.FrameType | None], Any] | int | None


class LockManager:
    """Manages the PID lock file of one scheduled task."""

    def __init__(
        self,
        lock_file: Path,
        logger: logging.Logger,
        settle_seconds: float = 1.0,
        install_signal_handlers: bool = True,
    ) -> None:
        """Initialize the LockManager.

        Args:
            lock_file: Path to the lock file
            logger: Logger instance for logging operations
            settle_seconds: Pause after killing a stale owner before reclaiming
            install_signal_handlers: Convert termination signals into SystemExit
                while the lock is held so the lock is released

        """
        self.lock_file = lock_file
        self.logger = logger
        self.settle_seconds = settle_seconds
        self.install_signal_handlers = install_signal_handlers
        self.owner_pid: int | None = None
        self._previous_handlers: dict[int, SignalHandler] = {}

    def __enter__(self) -> "LockManager":
        """Context manager entry point."""
        self.create_lock()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Context manager exit point."""
        self.release_lock()

    @property
    def is_held(self) -> bool:
        """Whether this manager currently owns the lock."""
        return self.owner_pid is not None

    def read_pid(self) -> int | None:
        """Read the PID recorded in the lock file.

        Returns:
            The recorded PID, or None if the file is missing or unreadable

        """
        try:
            content = self.lock_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.warning(f"Could not read lock file {self.lock_file}: {e}")
            return None

        try:
            return int(content)
        except ValueError:
            self.logger.warning(
                f"Lock file {self.lock_file} does not contain a PID: {content!r}",
            )
            return None

    def create_lock(self) -> None:
        """Acquire the lock, preempting a running or stale owner.

        Raises:
            LockError: If the lock file cannot be written

        """
        if self.lock_file.exists():
            existing_pid = self.read_pid()
            if existing_pid is not None:
                self._terminate_existing_instance(existing_pid)
            time.sleep(self.settle_seconds)
            self._remove_lock_file()

        current_pid = os.getpid()
        try:
            self.lock_file.write_text(f"{current_pid}\n", encoding="utf-8")
        except OSError as e:
            error_msg = f"Cannot write lock file {self.lock_file}: {e}"
            self.logger.exception(error_msg)
            raise LockError(error_msg) from e

        self.owner_pid = current_pid
        self._register_release()
        self.logger.info(f"Lock file {self.lock_file} created (PID: {current_pid}).")

    def release_lock(self) -> None:
        """Release the lock file. Safe to call more than once."""
        if not self.is_held:
            return

        self.owner_pid = None
        self._unregister_release()
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            self.logger.warning("Lock file does not exist when attempting to release.")
        else:
            self.logger.info("Lock file released.")

    def _terminate_existing_instance(self, existing_pid: int) -> None:
        """Kill the process recorded in the lock file.

        Args:
            existing_pid: PID read from the lock file

        """
        if existing_pid == os.getpid():
            self.logger.warning("Lock file already records this process. Reclaiming.")
            return

        self.logger.warning(
            f"Another instance is running (PID: {existing_pid}). Attempting to terminate...",
        )
        try:
            os.kill(existing_pid, signal.SIGKILL)
        except ProcessLookupError:
            self.logger.warning(
                "Could not terminate existing instance (may have already exited)",
            )
        except (PermissionError, OverflowError, ValueError) as e:
            self.logger.warning(f"Could not terminate existing instance: {e}")
        else:
            self.logger.info("Successfully terminated existing instance")

    def _remove_lock_file(self) -> None:
        """Delete a stale lock file, tolerating a concurrent removal."""
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove stale lock file {self.lock_file}: {e}")

    def _register_release(self) -> None:
        """Release the lock on interpreter exit and on termination signals."""
        atexit.register(self.release_lock)
        if not self.install_signal_handlers:
            return

        for signal_name in RELEASE_SIGNALS:
            signum = getattr(signal, signal_name, None)
            if signum is None:
                continue
            try:
                self._previous_handlers[signum] = signal.signal(
                    signum,
                    self._handle_signal,
                )
            except ValueError:
                # Only the main thread may install signal handlers.
                self.logger.debug(f"Cannot install handler for {signal_name}")

    def _unregister_release(self) -> None:
        """Undo what _register_release installed."""
        atexit.unregister(self.release_lock)
        for signum, handler in self._previous_handlers.items():
            try:
                signal.signal(signum, handler)
            except (TypeError, ValueError):
                self.logger.debug(f"Cannot restore handler for signal {signum}")
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame: types.FrameType | None) -> None:
        """Turn a termination signal into SystemExit so scoped cleanup runs."""
        self.logger.warning(
            f"Received {signal.Signals(signum).name}, releasing lock and exiting.",
        )
        self.release_lock()
        raise SystemExit(128 + signum)
