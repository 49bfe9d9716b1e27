#!/usr/bin/env python3
"""MySQL database dumps through the Plesk CLI.

Every database except the system ones is dumped into ``<backup_dir>/<name>.sql``.
Dumps of databases that no longer exist are removed. A failing dump does not
stop the remaining ones; the run fails at the end instead.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from pleskops.config import MySQLBackupSettings
from pleskops.exceptions import TaskError
from pleskops.runner import (
    TaskSummary,
    build_parser,
    create_task_runner,
    load_settings_or_exit,
    run_task,
    setup_task_logging,
)
from pleskops.utils import CommandRunner

TASK_NAME = "mysql_backup"
LIST_HEADER = "Database"


class MySQLBackup:
    """Dumps all Plesk-managed MySQL databases to individual files."""

    title = "MySQL Database Backup"

    def __init__(
        self,
        settings: MySQLBackupSettings,
        command_runner: CommandRunner,
        logger: logging.Logger,
        dry_run: bool = False,
    ) -> None:
        """Initialize the MySQLBackup instance.

        Args:
            settings: Backup directory, Plesk binary and excluded databases
            command_runner: Runs the Plesk CLI
            logger: Logger instance for logging operations
            dry_run: If True, list and report without dumping or deleting

        """
        self.backup_dir = settings.backup_dir
        self.plesk_bin = settings.plesk_bin
        self.excluded_databases = tuple(settings.excluded_databases)
        self.command_runner = command_runner
        self.logger = logger
        self.dry_run = dry_run

    def dump_path(self, database: str) -> Path:
        """Path of the dump file of a database."""
        return self.backup_dir / f"{database}.sql"

    def _ensure_backup_dir(self) -> None:
        """Create the backup directory if it doesn't exist.

        Raises:
            TaskError: If the directory cannot be created

        """
        if self.dry_run:
            if not self.backup_dir.is_dir():
                self.logger.info(f"DRY RUN: Would create backup directory {self.backup_dir}")
            return
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error_msg = f"Failed to create backup directory: {self.backup_dir}"
            self.logger.exception(error_msg)
            raise TaskError(error_msg, e) from e

    def _check_plesk_cli(self) -> None:
        """Require the Plesk CLI tool.

        Raises:
            TaskError: If the tool is missing or not executable

        """
        if not (self.plesk_bin.is_file() and os.access(self.plesk_bin, os.X_OK)):
            error_msg = f"Plesk CLI tool not found or not executable: {self.plesk_bin}"
            self.logger.error(error_msg)
            raise TaskError(error_msg)

    def is_excluded(self, database: str) -> bool:
        """Whether a database is a system database that is never dumped."""
        return any(excluded in database for excluded in self.excluded_databases)

    def list_databases(self) -> list[str]:
        """Retrieve the databases to back up.

        Returns:
            Database names in server order, system databases removed

        Raises:
            TaskError: If the database list cannot be retrieved

        """
        self.logger.info("Retrieving list of databases...")
        result = self.command_runner.run(
            [self.plesk_bin, "db", "-e", "SHOW DATABASES"],
        )
        if not result.ok:
            error_msg = "Cannot connect to MySQL database or retrieve database list"
            self.logger.error(f"{error_msg}: {result.stderr.strip()}")
            raise TaskError(error_msg)

        databases = []
        for line in result.stdout.splitlines():
            name = line.strip()
            # Plain and tabular (|-delimited) mysql output are both accepted.
            name = name.strip("|").strip()
            if not name or name == LIST_HEADER or set(name) <= {"+", "-"}:
                continue
            if self.is_excluded(name):
                self.logger.debug(f"Skipping system database: {name}")
                continue
            databases.append(name)
        return databases

    def _cleanup_orphaned_backups(self, databases: list[str]) -> int:
        """Remove dumps of databases that no longer exist.

        Returns:
            Number of removed (or, in dry-run, removable) files

        """
        self.logger.info("Checking for orphaned backup files...")
        if not self.backup_dir.is_dir():
            self.logger.info("No orphaned backup files found")
            return 0

        current = set(databases)
        cleaned_count = 0
        for backup_file in sorted(self.backup_dir.glob("*.sql")):
            if not backup_file.is_file() or backup_file.stem in current:
                continue
            if self.dry_run:
                self.logger.info(
                    f"DRY RUN: Would remove orphaned backup: {backup_file.name} "
                    f"(database no longer exists)",
                )
                cleaned_count += 1
                continue
            try:
                backup_file.unlink()
            except OSError as e:
                self.logger.warning(f"Could not remove orphaned backup {backup_file}: {e}")
                continue
            self.logger.info(
                f"Removing orphaned backup: {backup_file.name} (database no longer exists)",
            )
            cleaned_count += 1

        if cleaned_count == 0:
            self.logger.info("No orphaned backup files found")
        else:
            self.logger.info(f"Cleaned up {cleaned_count} orphaned backup file(s)")
        return cleaned_count

    def _remove_dump(self, dump_file: Path) -> None:
        try:
            dump_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove {dump_file}: {e}")

    def backup_database(self, database: str) -> bool:
        """Dump one database.

        Returns:
            True if the dump succeeded

        """
        dump_file = self.dump_path(database)
        if self.dry_run:
            self.logger.info(f"    DRY RUN: Would dump {database} to {dump_file}")
            return True

        self._remove_dump(dump_file)
        try:
            result = self.command_runner.run(
                [self.plesk_bin, "db", "dump", database],
                stdout_path=dump_file,
            )
        except OSError as e:
            self.logger.error(f"    ERROR: Cannot write {dump_file}: {e}")  # noqa: TRY400
            self._remove_dump(dump_file)
            return False

        if not result.ok:
            self.logger.error(f"    ERROR: Dump failed for database: {database}")
            if result.stderr.strip():
                self.logger.error(f"    Stderr: {result.stderr.strip()}")
            self._remove_dump(dump_file)
            return False

        self.logger.info(f"    Successfully backed up: {database}")
        return True

    def run(self) -> TaskSummary:
        """Run the whole backup.

        Returns:
            Summary of processed, failed and cleaned databases

        Raises:
            TaskError: If the backup cannot start at all

        """
        summary = TaskSummary(dry_run=self.dry_run)
        self.logger.info(
            f"{self.title} - Starting at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        )
        self.logger.info(f"Backup directory: {self.backup_dir}")
        if self.dry_run:
            self.logger.info("DRY RUN MODE: No actual changes will be made")

        self._ensure_backup_dir()
        self._check_plesk_cli()
        databases = self.list_databases()

        if not databases:
            self.logger.warning("No databases found to backup")
            return summary

        summary.cleaned = self._cleanup_orphaned_backups(databases)

        self.logger.info("Starting database backup...")
        for database in databases:
            self.logger.info(f"[{summary.total + 1}] Backing up database: {database}")
            if self.backup_database(database):
                summary.record_success()
            else:
                summary.record_failure()

        self.logger.info(f"Backup location: {self.backup_dir}")
        return summary


def main() -> None:
    """Execute the main entry point for the MySQL backup script."""
    parser = build_parser("Back up all Plesk MySQL databases to individual SQL files.")
    argv = sys.argv[1:]
    args = parser.parse_args(argv)

    settings = load_settings_or_exit(args)
    logger = setup_task_logging(TASK_NAME, settings, args.log_level)

    lock_dir = settings.mysql_backup.lock_file.parent
    try:
        lock_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.critical(f"Failed to create backup directory {lock_dir}: {e}")
        sys.exit(1)

    backup = MySQLBackup(
        settings=settings.mysql_backup,
        command_runner=CommandRunner(logger),
        logger=logger,
        dry_run=args.dry_run,
    )
    runner = create_task_runner(
        task=backup,
        task_name=TASK_NAME,
        settings=settings,
        lock_file=settings.mysql_backup.lock_file,
        update_path=settings.mysql_backup.update_path,
        executable_path=Path(__file__).resolve(),
        logger=logger,
    )
    sys.exit(run_task(runner, argv, manual_update=args.update))


if __name__ == "__main__":
    main()
