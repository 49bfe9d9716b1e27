"""Logging setup shared by the pleskops tasks."""

from .logger_setup import LoggerConfigError, LoggingConfig, configure_logging, get_logger

__all__ = ["LoggerConfigError", "LoggingConfig", "configure_logging", "get_logger"]
