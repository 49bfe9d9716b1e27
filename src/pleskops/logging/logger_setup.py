"""Logging configuration for the pleskops scheduled tasks.

Every task logs timestamped lines to the console (picked up by cron mail or
the Plesk scheduled task log) and to a rotating file.
"""

import logging
import logging.config
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO for a cron job.
QUIET_LOGGERS = ("urllib3", "requests")


class LoggerConfigError(Exception):
    """Custom exception for logger configuration errors."""


@dataclass
class LoggingConfig:
    """Configuration for logging setup."""

    log_name: str
    log_filename: str | None = None
    log_level: str = "INFO"
    log_dir: Path | None = None
    max_bytes: int = 5 * 1024 * 1024  # 5 MB
    backup_count: int = 3
    enable_console: bool = True
    enable_file: bool = True


def validate_log_level(log_level: str) -> int:
    """Validate and return the numeric log level."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        error_msg = f"Invalid log level: {log_level}"
        raise LoggerConfigError(error_msg)
    return numeric_level


def get_default_log_dir() -> Path:
    """Get the default log directory.

    Tasks normally run as root from the Plesk scheduler and log below
    /var/log; unprivileged runs fall back to the user's home directory.
    """
    if Path("/var/log").exists() and os.access("/var/log", os.W_OK):
        return Path("/var/log/pleskops")
    return Path.home() / ".local" / "log" / "pleskops"


def create_logging_config(config: LoggingConfig) -> dict[str, Any]:
    """Build the ``dictConfig`` dictionary for a task logger.

    Args:
        config: Logging configuration object

    Returns:
        Dictionary accepted by ``logging.config.dictConfig``

    Raises:
        LoggerConfigError: If the level is invalid or the log directory
            cannot be created

    """
    numeric_level = validate_log_level(config.log_level)

    handlers: dict[str, dict[str, Any]] = {}

    if config.enable_file:
        log_dir = get_default_log_dir() if config.log_dir is None else config.log_dir
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error_msg = f"Failed to create log directory {log_dir}: {e}"
            raise LoggerConfigError(error_msg) from e

        log_filename = config.log_filename or f"{config.log_name}.log"
        handlers["file_handler"] = {
            "level": numeric_level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_dir / log_filename),
            "maxBytes": config.max_bytes,
            "backupCount": config.backup_count,
            "formatter": "detailed",
            "encoding": "utf8",
        }

    if config.enable_console:
        handlers["console_handler"] = {
            "level": numeric_level,
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        }

    loggers: dict[str, dict[str, Any]] = {
        config.log_name: {
            "handlers": list(handlers.keys()),
            "level": numeric_level,
            "propagate": False,
        },
    }
    for quiet_name in QUIET_LOGGERS:
        loggers[quiet_name] = {"level": logging.WARNING}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": CONSOLE_FORMAT, "datefmt": DATE_FORMAT},
            "detailed": {"format": FILE_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Configure logging for a task.

    Args:
        config: Logging configuration object

    Returns:
        Configured logger instance

    """
    try:
        logging.config.dictConfig(create_logging_config(config))
        logger = logging.getLogger(config.log_name)
        logger.debug(
            f"Logging configured for '{config.log_name}' at level {config.log_level}",
        )
    except (LoggerConfigError, ValueError, KeyError):
        # A broken log directory must not stop a backup from running.
        logging.basicConfig(
            level=logging.INFO,
            format=CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
        )
        logger = logging.getLogger(config.log_name)
        logger.exception("Failed to configure logging. Using fallback configuration.")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance. If nothing is configured, use console logging.

    Args:
        name: Name of the logger

    Returns:
        Logger instance

    """
    logger = logging.getLogger(name)

    parent_logger = logger.parent
    if not logger.handlers and (parent_logger is None or not parent_logger.handlers):
        logging.basicConfig(
            level=logging.INFO,
            format=CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
        )

    return logger
