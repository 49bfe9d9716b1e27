"""Tests for the HTTP downloader."""

import logging
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest
import requests

from pleskops.selfupdate.transport import HttpDownloader, RemoteSource


def _response(status_code: int = 200, chunks: list[bytes] | None = None) -> MagicMock:
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.__enter__.return_value = response
    response.iter_content.return_value = chunks or []
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Client Error",
        )
    return response


class TestRemoteSource:
    """Test cases for building download URLs."""

    def test_url(self) -> None:
        """Test the raw content URL layout."""
        source = RemoteSource(
            relative_path="mysql-backups/mysql-backup.py",
            repository="owner/plesk-scripts",
            branch="stable",
        )

        assert source.url == (
            "https://raw.githubusercontent.com/owner/plesk-scripts/stable/"
            "mysql-backups/mysql-backup.py"
        )

    def test_leading_slash_is_ignored(self) -> None:
        """Test a relative path with a leading slash gives the same URL."""
        assert RemoteSource("/a.py").url == RemoteSource("a.py").url

    def test_defaults(self) -> None:
        """Test the default repository and branch."""
        assert RemoteSource("a.py").url.endswith("/architecpoint/plesk-scripts/main/a.py")


class TestHttpDownloader:
    """Test cases for HttpDownloader."""

    def test_is_available_for_https(self) -> None:
        """Test the default session handles https URLs."""
        downloader = HttpDownloader(Mock(spec=logging.Logger))

        assert downloader.is_available("https://raw.githubusercontent.com/a/b/c")

    def test_is_not_available_for_unknown_scheme(self) -> None:
        """Test URLs without a transport adapter are reported unavailable."""
        logger = Mock(spec=logging.Logger)
        downloader = HttpDownloader(logger)

        assert not downloader.is_available("ftp://example.com/script.py")
        logger.warning.assert_called_once()

    def test_download_writes_chunks(self, tmp_path: Path) -> None:
        """Test the response body is streamed to the destination."""
        session = Mock(spec=requests.Session)
        session.get.return_value = _response(chunks=[b"#!/usr/bin/env ", b"", b"python3\n"])
        downloader = HttpDownloader(Mock(spec=logging.Logger), session=session, timeout=5)
        destination = tmp_path / "script.update.1"

        written = downloader.download("https://example.com/script.py", destination)

        assert written == len(b"#!/usr/bin/env python3\n")
        assert destination.read_bytes() == b"#!/usr/bin/env python3\n"
        session.get.assert_called_once_with(
            "https://example.com/script.py",
            stream=True,
            timeout=5,
        )

    def test_download_http_error(self, tmp_path: Path) -> None:
        """Test an error status raises and writes nothing."""
        session = Mock(spec=requests.Session)
        session.get.return_value = _response(status_code=404)
        downloader = HttpDownloader(Mock(spec=logging.Logger), session=session)
        destination = tmp_path / "script.update.1"

        with pytest.raises(requests.HTTPError):
            downloader.download("https://example.com/missing.py", destination)

        assert not destination.exists()

    def test_download_non_2xx_without_error(self, tmp_path: Path) -> None:
        """Test a non-2xx status that requests accepts is still rejected."""
        session = Mock(spec=requests.Session)
        session.get.return_value = _response(status_code=304)
        downloader = HttpDownloader(Mock(spec=logging.Logger), session=session)

        with pytest.raises(requests.HTTPError, match="Unexpected HTTP status 304"):
            downloader.download("https://example.com/a.py", tmp_path / "a.update.1")

    def test_download_connection_error(self, tmp_path: Path) -> None:
        """Test connection errors propagate to the caller."""
        session = Mock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("Name or service not known")
        downloader = HttpDownloader(Mock(spec=logging.Logger), session=session)

        with pytest.raises(requests.ConnectionError):
            downloader.download("https://example.com/a.py", tmp_path / "a.update.1")
