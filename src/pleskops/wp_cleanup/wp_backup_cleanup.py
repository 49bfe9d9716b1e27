#!/usr/bin/env python3
"""Removal of old WordPress backup files from all Plesk virtual hosts."""

import glob
import logging
import sys
import time
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from pleskops.config import WPCleanupSettings
from pleskops.runner import (
    TaskSummary,
    build_parser,
    create_task_runner,
    load_settings_or_exit,
    run_task,
    setup_task_logging,
)

TASK_NAME = "wp_backup_cleanup"
SECONDS_PER_DAY = 24 * 60 * 60


class RetentionSweeper:
    """Deletes files older than the retention period below matching directories."""

    title = "WordPress Backup Cleanup"

    def __init__(
        self,
        search_pattern: str,
        days: int,
        logger: logging.Logger,
        dry_run: bool = False,
        now: float | None = None,
    ) -> None:
        """Initialize the RetentionSweeper.

        Args:
            search_pattern: Glob matching the backup directories
            days: Files strictly older than this many days are removed
            logger: Logger instance for logging operations
            dry_run: If True, report the selection without deleting
            now: Reference epoch time, the start of the run by default

        """
        self.search_pattern = search_pattern
        self.days = days
        self.logger = logger
        self.dry_run = dry_run
        self.now = now

    @classmethod
    def from_settings(
        cls,
        settings: WPCleanupSettings,
        logger: logging.Logger,
        dry_run: bool = False,
    ) -> "RetentionSweeper":
        """Create a sweeper from settings; ``dry_run`` adds to the configured one."""
        return cls(
            search_pattern=settings.search_pattern,
            days=settings.days,
            logger=logger,
            dry_run=settings.dry_run or dry_run,
        )

    @property
    def threshold_seconds(self) -> int:
        """Retention period in seconds."""
        return self.days * SECONDS_PER_DAY

    def backup_directories(self) -> list[Path]:
        """Directories matching the search pattern."""
        matches = sorted(glob.glob(self.search_pattern))  # noqa: PTH207
        return [Path(match) for match in matches if Path(match).is_dir()]

    def _iter_files(self, directory: Path) -> Iterator[Path]:
        """Regular files below ``directory``; symlinks are not followed."""
        for path in directory.rglob("*"):
            if path.is_symlink():
                continue
            if path.is_file():
                yield path

    def select_expired(self, directories: list[Path], now: float) -> list[Path]:
        """Select files whose age is strictly greater than the retention period.

        Args:
            directories: Directories to search recursively
            now: Reference epoch time

        Returns:
            Expired files, sorted

        """
        cutoff = now - self.threshold_seconds
        expired = []
        for directory in directories:
            for file_path in self._iter_files(directory):
                try:
                    mtime = file_path.stat().st_mtime
                except OSError as e:
                    self.logger.warning(f"Could not stat {file_path}: {e}")
                    continue
                if mtime < cutoff:
                    expired.append(file_path)
        return sorted(expired)

    def run(self) -> TaskSummary:
        """Remove expired backup files.

        Returns:
            Summary of selected, removed and failed files

        """
        summary = TaskSummary(dry_run=self.dry_run)
        now = time.time() if self.now is None else self.now

        self.logger.info("Starting WordPress backup cleanup...")
        self.logger.info(
            f"Removing backups older than {self.days} days from: {self.search_pattern}",
        )
        if self.dry_run:
            self.logger.info("DRY RUN MODE: No files will be deleted")

        directories = self.backup_directories()
        if not directories:
            self.logger.warning(
                f"No WordPress backup directories found at {self.search_pattern}",
            )
            return summary

        expired = self.select_expired(directories, now)
        if not expired:
            self.logger.info(
                f"No backup files older than {self.days} days found. Nothing to delete.",
            )
            return summary

        self.logger.info(f"Found {len(expired)} backup file(s) to delete.")
        for file_path in expired:
            if self.dry_run:
                self.logger.info(f"DRY RUN: Would delete {file_path}")
                summary.record_success()
                continue
            try:
                mtime = datetime.fromtimestamp(file_path.stat().st_mtime)
                file_path.unlink()
            except OSError as e:
                self.logger.warning(f"Could not delete {file_path}: {e}")
                summary.record_failure()
                continue
            self.logger.info(f"Deleted {file_path} (modified: {mtime:%Y-%m-%d %H:%M:%S})")
            summary.record_success()

        if not self.dry_run:
            summary.cleaned = summary.succeeded
        if summary.failed:
            self.logger.error("Failed to remove some backup files. Check permissions.")
        else:
            self.logger.info(
                f"Successfully {'selected' if self.dry_run else 'removed'} "
                f"{summary.succeeded} old backup file(s).",
            )
        return summary


def main() -> None:
    """Execute the main entry point for the WordPress backup cleanup script."""
    parser = build_parser("Remove old WordPress backup files from all Plesk virtual hosts.")
    argv = sys.argv[1:]
    args = parser.parse_args(argv)

    settings = load_settings_or_exit(args)
    logger = setup_task_logging(TASK_NAME, settings, args.log_level)

    sweeper = RetentionSweeper.from_settings(
        settings.wp_cleanup,
        logger,
        dry_run=args.dry_run,
    )
    runner = create_task_runner(
        task=sweeper,
        task_name=TASK_NAME,
        settings=settings,
        lock_file=settings.wp_cleanup.lock_file,
        update_path=settings.wp_cleanup.update_path,
        executable_path=Path(__file__).resolve(),
        logger=logger,
    )
    sys.exit(run_task(runner, argv, manual_update=args.update))


if __name__ == "__main__":
    main()
