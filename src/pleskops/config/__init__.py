"""Settings loading for the pleskops tasks."""

from .config_manager import (
    ConfigManager,
    MySQLBackupSettings,
    Settings,
    UpdateSettings,
    WPCleanupSettings,
)

__all__ = [
    "ConfigManager",
    "MySQLBackupSettings",
    "Settings",
    "UpdateSettings",
    "WPCleanupSettings",
]
