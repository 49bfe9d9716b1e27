"""Self-update of pleskops task scripts from a published repository."""

from .exceptions import (
    BackupFailedError,
    DownloadFailedError,
    InvalidArtifactError,
    SwapFailedError,
    TransportUnavailableError,
    UpdateError,
)
from .state import (
    CheckTimestampStore,
    InMemoryTimestampStore,
    MarkerFileTimestampStore,
    should_check_for_update,
)
from .transport import HttpDownloader, RemoteSource
from .updater import ExecutableArtifact, SelfUpdater, UpdateResult, UpdateStatus

__all__ = [
    "BackupFailedError",
    "CheckTimestampStore",
    "DownloadFailedError",
    "ExecutableArtifact",
    "HttpDownloader",
    "InMemoryTimestampStore",
    "InvalidArtifactError",
    "MarkerFileTimestampStore",
    "RemoteSource",
    "SelfUpdater",
    "SwapFailedError",
    "TransportUnavailableError",
    "UpdateError",
    "UpdateResult",
    "UpdateStatus",
    "should_check_for_update",
]
