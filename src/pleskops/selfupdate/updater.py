"""Fetch-validate-swap self-update of a running script."""

import filecmp
import logging
import os
import shutil
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import requests

from pleskops.selfupdate.exceptions import (
    BackupFailedError,
    DownloadFailedError,
    InvalidArtifactError,
    SwapFailedError,
    TransportUnavailableError,
    UpdateError,
)
from pleskops.selfupdate.state import CheckTimestampStore
from pleskops.selfupdate.transport import HttpDownloader


class UpdateStatus(Enum):
    """Outcome of one update attempt."""

    UNCHANGED = "unchanged"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateResult:
    """Result of ``SelfUpdater.update``."""

    status: UpdateStatus
    error: UpdateError | None = None

    @property
    def ok(self) -> bool:
        """True unless the update failed."""
        return self.status is not UpdateStatus.FAILED

    @property
    def reason(self) -> str | None:
        """Name of the failure, e.g. ``SwapFailedError``."""
        return type(self.error).__name__ if self.error is not None else None


@dataclass(frozen=True)
class ExecutableArtifact:
    """The script file being updated and the files derived from its path."""

    current_path: Path

    @property
    def backup_path(self) -> Path:
        """Copy of the last version that was replaced."""
        return self.current_path.with_name(f"{self.current_path.name}.backup")

    def candidate_path(self, pid: int) -> Path:
        """Per-process download location next to the live file."""
        return self.current_path.with_name(f"{self.current_path.name}.update.{pid}")


class SelfUpdater:
    """Replaces a script with the latest published version.

    The steps run in order and any of them can fail with an ``UpdateError``:
    check transport, download to a candidate file, validate, compare, back up
    the live file, swap the candidate in. The live file is never written in
    place; it is either untouched, replaced by a rename, or restored from the
    backup.
    """

    def __init__(
        self,
        downloader: HttpDownloader,
        timestamp_store: CheckTimestampStore,
        logger: logging.Logger,
        interpreter_marker: str = "python",
    ) -> None:
        """Initialize the SelfUpdater.

        Args:
            downloader: Transport used to fetch the new version
            timestamp_store: Where the last check time is recorded
            logger: Logger instance for logging operations
            interpreter_marker: Text the shebang line of a valid download
                must contain

        """
        self.downloader = downloader
        self.timestamp_store = timestamp_store
        self.logger = logger
        self.interpreter_marker = interpreter_marker

    def update(self, source_url: str, executable_path: Path) -> UpdateResult:
        """Update ``executable_path`` from ``source_url``.

        Args:
            source_url: Where the latest version is published
            executable_path: The running script

        Returns:
            ``UNCHANGED`` if already current, ``UPDATED`` if the new version is
            in place and the caller should relaunch, ``FAILED`` otherwise

        """
        artifact = ExecutableArtifact(executable_path)
        candidate = artifact.candidate_path(os.getpid())

        self.logger.info("Checking for updates...")
        self.logger.info(f"Source: {source_url}")

        try:
            self._check_transport(source_url)
            try:
                self._download(source_url, candidate)
            finally:
                self.timestamp_store.record_check()
            self._validate(candidate)

            if self._is_identical(artifact.current_path, candidate):
                self.logger.info("Already running the latest version. No update needed.")
                return UpdateResult(UpdateStatus.UNCHANGED)

            self.logger.info("New version available. Installing update...")
            self._backup(artifact)
            self._swap(artifact, candidate)
        except UpdateError as e:
            self.logger.error(f"Update failed: {e.message}")  # noqa: TRY400
            return UpdateResult(UpdateStatus.FAILED, error=e)
        finally:
            self._discard(candidate)

        self.logger.info("Successfully updated to the latest version!")
        self.logger.info(f"Backup saved to: {artifact.backup_path}")
        return UpdateResult(UpdateStatus.UPDATED)

    def _check_transport(self, source_url: str) -> None:
        if not self.downloader.is_available(source_url):
            error_msg = f"No HTTP transport available for {source_url}"
            raise TransportUnavailableError(error_msg)

    def _download(self, source_url: str, candidate: Path) -> None:
        try:
            self.downloader.download(source_url, candidate)
        except (requests.RequestException, OSError) as e:
            error_msg = f"Failed to download update: {e}"
            raise DownloadFailedError(error_msg, e) from e

    def _validate(self, candidate: Path) -> None:
        """Shallow sanity check of the download, not a signature check."""
        try:
            if candidate.stat().st_size == 0:
                error_msg = "Downloaded file is empty"
                raise InvalidArtifactError(error_msg)
            with candidate.open("rb") as f_in:
                first_line = f_in.readline().decode("utf-8", errors="replace")
        except OSError as e:
            error_msg = f"Cannot read downloaded file {candidate}: {e}"
            raise InvalidArtifactError(error_msg, e) from e

        if not first_line.startswith("#!") or self.interpreter_marker not in first_line:
            error_msg = (
                f"Downloaded file does not appear to be a valid "
                f"{self.interpreter_marker} script"
            )
            raise InvalidArtifactError(error_msg)

    def _is_identical(self, current_path: Path, candidate: Path) -> bool:
        try:
            return filecmp.cmp(current_path, candidate, shallow=False)
        except OSError:
            # Counts as changed; the backup step then reports the missing file.
            return False

    def _backup(self, artifact: ExecutableArtifact) -> None:
        try:
            shutil.copy2(artifact.current_path, artifact.backup_path)
        except OSError as e:
            error_msg = f"Failed to create backup {artifact.backup_path}: {e}"
            raise BackupFailedError(error_msg, e) from e

    def _swap(self, artifact: ExecutableArtifact, candidate: Path) -> None:
        try:
            mode = candidate.stat().st_mode
            candidate.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            os.replace(candidate, artifact.current_path)
        except OSError as e:
            self.logger.warning(
                f"Installing update failed, restoring {artifact.current_path} from backup",
            )
            self._restore(artifact)
            error_msg = f"Failed to install update: {e}"
            raise SwapFailedError(error_msg, e) from e

    def _restore(self, artifact: ExecutableArtifact) -> None:
        """Copy the backup over the live path; the backup itself is kept."""
        try:
            shutil.copy2(artifact.backup_path, artifact.current_path)
        except OSError:
            self.logger.exception(
                f"Could not restore {artifact.current_path} from {artifact.backup_path}",
            )

    def _discard(self, candidate: Path) -> None:
        try:
            candidate.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file {candidate}: {e}")
