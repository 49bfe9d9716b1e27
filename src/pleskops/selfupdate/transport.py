"""HTTP download of new script versions."""

import logging
from dataclasses import dataclass
from pathlib import Path

import requests

DEFAULT_REPOSITORY = "architecpoint/plesk-scripts"
DEFAULT_BRANCH = "main"
RAW_CONTENT_BASE_URL = "https://raw.githubusercontent.com"


@dataclass(frozen=True)
class RemoteSource:
    """A file published in a GitHub repository."""

    relative_path: str
    repository: str = DEFAULT_REPOSITORY
    branch: str = DEFAULT_BRANCH

    @property
    def url(self) -> str:
        """Raw download URL of the file on the configured branch."""
        return (
            f"{RAW_CONTENT_BASE_URL}/{self.repository}/{self.branch}/"
            f"{self.relative_path.lstrip('/')}"
        )


class HttpDownloader:
    """Streams a remote file to disk with ``requests``."""

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        logger: logging.Logger,
        session: requests.Session | None = None,
        timeout: float | None = 60,
    ) -> None:
        """Initialize the downloader.

        Args:
            logger: Logger instance for logging operations
            session: HTTP session to use, a new one by default
            timeout: Connect and read timeout in seconds, None waits forever

        """
        self.logger = logger
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def is_available(self, url: str) -> bool:
        """Check that the session has a transport adapter for the URL's scheme."""
        try:
            self.session.get_adapter(url)
        except requests.exceptions.InvalidSchema:
            self.logger.warning(f"No HTTP transport available for {url}")
            return False
        return True

    def download(self, url: str, destination: Path) -> int:
        """Download ``url`` into ``destination``.

        Args:
            url: Source URL
            destination: File to write, created or truncated

        Returns:
            Number of bytes written

        Raises:
            requests.RequestException: On connection errors, timeouts and
                non-2xx responses
            OSError: If the destination cannot be written

        """
        self.logger.info(f"Downloading {url}")
        with self.session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            if not 200 <= response.status_code < 300:  # noqa: PLR2004
                error_msg = f"Unexpected HTTP status {response.status_code} for {url}"
                raise requests.HTTPError(error_msg, response=response)

            written = 0
            with destination.open("wb") as f_out:
                for chunk in response.iter_content(self.CHUNK_SIZE):
                    if chunk:
                        f_out.write(chunk)
                        written += len(chunk)

        self.logger.debug(f"Downloaded {written} bytes to {destination}")
        return written
