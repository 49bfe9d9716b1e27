"""Tests for the logging module."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from pleskops.logging.logger_setup import (
    DATE_FORMAT,
    QUIET_LOGGERS,
    LoggerConfigError,
    LoggingConfig,
    configure_logging,
    create_logging_config,
    get_default_log_dir,
    get_logger,
    validate_log_level,
)


class TestLoggerSetup:
    """Test cases for logger setup functionality."""

    def test_validate_log_level_valid(self) -> None:
        """Test that valid log levels are accepted in any case."""
        assert validate_log_level("DEBUG") == logging.DEBUG
        assert validate_log_level("info") == logging.INFO
        assert validate_log_level("Warning") == logging.WARNING

    def test_validate_log_level_invalid(self) -> None:
        """Test that invalid log levels raise an exception."""
        with pytest.raises(LoggerConfigError):
            validate_log_level("VERBOSE")

    def test_get_default_log_dir_writable_var_log(self) -> None:
        """Test /var/log is used when it is writable."""
        with (
            patch("pathlib.Path.exists", return_value=True),
            patch("os.access", return_value=True),
        ):
            assert get_default_log_dir() == Path("/var/log/pleskops")

    def test_get_default_log_dir_unprivileged(self) -> None:
        """Test the home directory is used when /var/log is not writable."""
        with (
            patch("pathlib.Path.exists", return_value=True),
            patch("os.access", return_value=False),
        ):
            assert get_default_log_dir() == Path.home() / ".local" / "log" / "pleskops"

    def test_create_logging_config_console_only(self) -> None:
        """Test no log directory is needed without a file handler."""
        config = LoggingConfig(log_name="console_only", enable_file=False)

        with patch("pathlib.Path.mkdir") as mock_mkdir:
            logging_config = create_logging_config(config)

        mock_mkdir.assert_not_called()
        handlers = logging_config["handlers"]
        assert list(handlers) == ["console_handler"]
        assert handlers["console_handler"]["stream"] == "ext://sys.stdout"

    def test_create_logging_config_file_handler(self) -> None:
        """Test the rotating file handler points into the log directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = LoggingConfig(
                log_name="mysql_backup",
                log_dir=Path(temp_dir) / "logs",
                enable_console=False,
            )
            logging_config = create_logging_config(config)

            file_handler = logging_config["handlers"]["file_handler"]
            assert file_handler["class"] == "logging.handlers.RotatingFileHandler"
            assert file_handler["filename"] == str(
                Path(temp_dir) / "logs" / "mysql_backup.log",
            )
            assert (Path(temp_dir) / "logs").is_dir()

    def test_create_logging_config_quiets_http_loggers(self) -> None:
        """Test HTTP library loggers are limited to warnings."""
        logging_config = create_logging_config(
            LoggingConfig(log_name="quiet", enable_file=False),
        )

        for name in QUIET_LOGGERS:
            assert logging_config["loggers"][name]["level"] == logging.WARNING

    def test_create_logging_config_timestamp_format(self) -> None:
        """Test every line starts with a bracketed timestamp."""
        logging_config = create_logging_config(
            LoggingConfig(log_name="fmt", enable_file=False),
        )

        standard = logging_config["formatters"]["standard"]
        assert standard["format"].startswith("[%(asctime)s]")
        assert standard["datefmt"] == DATE_FORMAT
        assert "%(lineno)d" in logging_config["formatters"]["detailed"]["format"]

    def test_create_logging_config_unwritable_dir(self) -> None:
        """Test a log directory that cannot be created raises LoggerConfigError."""
        config = LoggingConfig(log_name="broken", log_dir=Path("/invalid/path"))

        with (
            patch("pathlib.Path.mkdir", side_effect=PermissionError("Permission denied")),
            pytest.raises(LoggerConfigError, match="Failed to create log directory"),
        ):
            create_logging_config(config)

    def test_configure_logging_writes_file(self) -> None:
        """Test log lines end up in the task's log file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = LoggingConfig(
                log_name="wp_backup_cleanup",
                log_dir=Path(temp_dir),
                enable_console=False,
            )
            logger = configure_logging(config)
            logger.info("Starting WordPress backup cleanup...")
            for handler in logger.handlers:
                handler.flush()

            log_file = Path(temp_dir) / "wp_backup_cleanup.log"
            assert "Starting WordPress backup cleanup..." in log_file.read_text()
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_configure_logging_level(self) -> None:
        """Test the configured level is applied to the task logger."""
        logger = configure_logging(
            LoggingConfig(log_name="debug_task", log_level="DEBUG", enable_file=False),
        )

        assert logger.name == "debug_task"
        assert logger.level == logging.DEBUG

    def test_configure_logging_fallback(self) -> None:
        """Test an unusable log directory falls back to console logging."""
        config = LoggingConfig(log_name="fallback_task", log_dir=Path("/invalid/path"))

        with patch(
            "pathlib.Path.mkdir",
            side_effect=PermissionError("Permission denied"),
        ):
            logger = configure_logging(config)

        assert logger.name == "fallback_task"

    def test_get_logger(self) -> None:
        """Test get_logger returns the named logger."""
        assert get_logger("pleskops.test").name == "pleskops.test"
