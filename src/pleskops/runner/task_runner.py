"""Self-updating single-instance execution of a scheduled task."""

import argparse
import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Protocol

from pleskops.config import ConfigManager, Settings
from pleskops.exceptions import ConfigurationError, LockError, TaskError
from pleskops.locking import LockManager
from pleskops.logging import LoggingConfig, configure_logging, get_logger
from pleskops.selfupdate import (
    CheckTimestampStore,
    HttpDownloader,
    MarkerFileTimestampStore,
    RemoteSource,
    SelfUpdater,
    UpdateStatus,
    should_check_for_update,
)

SEPARATOR = "=" * 76


@dataclass
class TaskSummary:
    """Counters reported at the end of a task run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    cleaned: int = 0
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        """True if no unit failed."""
        return self.failed == 0

    def record_success(self) -> None:
        """Count one unit that was processed successfully."""
        self.total += 1
        self.succeeded += 1

    def record_failure(self) -> None:
        """Count one unit that failed."""
        self.total += 1
        self.failed += 1

    def log(self, logger: logging.Logger, title: str) -> None:
        """Write the summary block."""
        logger.info(SEPARATOR)
        logger.info(f"{title} - Completed{' (DRY RUN)' if self.dry_run else ''}")
        logger.info(SEPARATOR)
        logger.info(f"Total processed: {self.total}")
        logger.info(f"Successful: {self.succeeded}")
        logger.info(f"Failed: {self.failed}")
        logger.info(f"Cleaned up: {self.cleaned}")
        logger.info(SEPARATOR)


class ScheduledTask(Protocol):
    """A unit of scheduled work run under the instance lock."""

    title: str

    def run(self) -> TaskSummary:
        """Process all units and return the counters."""
        ...


class RestartRequested(Exception):  # noqa: N818
    """Raised when a new version was installed and the process must restart."""

    def __init__(self, executable: Path, argv: Sequence[str]) -> None:
        """Initialize with the script to start and its arguments."""
        super().__init__(f"Restart requested: {executable}")
        self.executable = executable
        self.argv = list(argv)


class TaskRunner:
    """Runs a task after an optional self-update, under the instance lock."""

    def __init__(  # noqa: PLR0913
        self,
        task: ScheduledTask,
        lock_manager: LockManager,
        updater: SelfUpdater,
        timestamp_store: CheckTimestampStore,
        source: RemoteSource,
        executable_path: Path,
        logger: logging.Logger,
        auto_update: bool = False,
        check_interval_seconds: float = 24 * 3600,
    ) -> None:
        """Initialize the TaskRunner.

        Args:
            task: The work to run
            lock_manager: Instance lock guarding the task
            updater: Self-updater for the running script
            timestamp_store: Last update-check time
            source: Where new versions of the script are published
            executable_path: The running script
            logger: Logger instance for logging operations
            auto_update: Check for updates automatically before running
            check_interval_seconds: Minimum time between automatic checks

        """
        self.task = task
        self.lock_manager = lock_manager
        self.updater = updater
        self.timestamp_store = timestamp_store
        self.source = source
        self.executable_path = executable_path
        self.logger = logger
        self.auto_update = auto_update
        self.check_interval_seconds = check_interval_seconds

    def execute(self, argv: Sequence[str], manual_update: bool = False) -> int:
        """Run one invocation.

        Args:
            argv: Command-line arguments without the program name, passed on
                to the restarted process
            manual_update: Only update the script, skipping the task

        Returns:
            Process exit code

        Raises:
            RestartRequested: If a new version was installed

        """
        if manual_update:
            self.logger.info("Manual update requested...")
            return self.run_update(argv)

        if self.auto_update and should_check_for_update(
            self.timestamp_store,
            self.check_interval_seconds,
        ):
            self.logger.info("Auto-update enabled. Checking for updates...")
            if self.run_update(argv) != 0:
                self.logger.warning(
                    "Auto-update failed. Continuing with current version...",
                )

        return self.run_locked()

    def run_update(self, argv: Sequence[str]) -> int:
        """Update the running script; request a restart if it changed.

        Returns:
            0 if the script is current, 1 if the update failed

        Raises:
            RestartRequested: If a new version was installed

        """
        result = self.updater.update(self.source.url, self.executable_path)
        if result.status is UpdateStatus.UPDATED:
            self.logger.info("Restarting with updated version...")
            raise RestartRequested(self.executable_path, argv)
        return 0 if result.ok else 1

    def run_locked(self) -> int:
        """Run the task under the instance lock.

        Returns:
            0 if every unit succeeded, 1 otherwise
        """
        try:
            with self.lock_manager:
                summary = self.task.run()
        except LockError:
            self.logger.critical("Could not acquire the instance lock. Aborting.")
            return 1
        except TaskError as e:
            self.logger.critical(f"{self.task.title} aborted: {e.message}")
            return 1

        summary.log(self.logger, self.task.title)
        return 0 if summary.ok else 1


def relaunch(executable: Path, argv: Sequence[str]) -> NoReturn:
    """Replace the current process with ``executable``, keeping the arguments."""
    args = [str(executable), *argv]
    if os.name == "posix":
        os.execv(args[0], args)  # noqa: S606
    else:
        # No process image replacement here: run the new version and exit.
        sys.exit(subprocess.call([sys.executable, *args]))  # noqa: S603


def run_task(
    runner: TaskRunner,
    argv: Sequence[str],
    manual_update: bool = False,
) -> int:
    """Run an invocation and perform a requested restart."""
    try:
        return runner.execute(argv, manual_update=manual_update)
    except RestartRequested as restart:
        relaunch(restart.executable, restart.argv)


def build_parser(description: str, *, dry_run: bool = True) -> argparse.ArgumentParser:
    """Create the command-line parser shared by the task scripts."""
    parser = argparse.ArgumentParser(
        description=description,
        allow_abbrev=False,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--update",
        "--self-update",
        dest="update",
        action="store_true",
        help="Update this script to the latest published version and exit.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to an optional YAML configuration file.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Path to an optional .env file with configuration variables.",
    )
    parser.add_argument(
        "--log-level",
        help="Override the log level (DEBUG, INFO, WARNING, ...).",
    )
    if dry_run:
        parser.add_argument(
            "-n",
            "--dry-run",
            action="store_true",
            help="Report what would be done without changing anything.",
        )
    return parser


def load_settings_or_exit(args: argparse.Namespace) -> Settings:
    """Load settings for the parsed arguments, exiting with 1 if invalid."""
    try:
        return ConfigManager.load_settings(args.config, args.env_file)
    except ConfigurationError as e:
        get_logger(__name__).critical(f"ERROR: {e}")
        sys.exit(1)


def setup_task_logging(
    task_name: str,
    settings: Settings,
    log_level: str | None,
) -> logging.Logger:
    """Configure logging for a task script."""
    return configure_logging(
        LoggingConfig(
            log_name=task_name,
            log_level=(log_level or settings.log_level).upper(),
        ),
    )


def create_task_runner(  # noqa: PLR0913
    task: ScheduledTask,
    task_name: str,
    settings: Settings,
    lock_file: Path,
    update_path: str,
    executable_path: Path,
    logger: logging.Logger,
) -> TaskRunner:
    """Wire a task with the default lock, updater and timestamp store.

    Args:
        task: The work to run
        task_name: Name used for the log and the update marker
        settings: Settings of this invocation
        lock_file: Instance lock of the task
        update_path: Location of the task module in the repository
        executable_path: The task module, unless ``update.executable_path``
            overrides it
        logger: Logger instance for logging operations

    """
    update_settings = settings.update
    timestamp_store = MarkerFileTimestampStore.for_task(task_name)
    updater = SelfUpdater(
        downloader=HttpDownloader(logger, timeout=update_settings.timeout_seconds),
        timestamp_store=timestamp_store,
        logger=logger,
        interpreter_marker=update_settings.interpreter_marker,
    )
    return TaskRunner(
        task=task,
        lock_manager=LockManager(lock_file=lock_file, logger=logger),
        updater=updater,
        timestamp_store=timestamp_store,
        source=RemoteSource(
            relative_path=update_path,
            repository=update_settings.repository,
            branch=update_settings.branch,
        ),
        executable_path=update_settings.executable_path or executable_path,
        logger=logger,
        auto_update=update_settings.auto_update,
        check_interval_seconds=update_settings.check_interval_seconds,
    )
