"""Configuration management for the scheduled tasks.

Settings are merged from, in increasing precedence: dataclass defaults, a YAML
file, a dotenv file and the process environment.
"""

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from pleskops.exceptions import ConfigurationError
from pleskops.selfupdate.transport import DEFAULT_BRANCH, DEFAULT_REPOSITORY

DEFAULT_EXCLUDED_DATABASES = ("information_schema", "performance_schema", "phpmyadmin")
SECONDS_PER_HOUR = 3600

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "AUTO_UPDATE": ("update", "auto_update"),
    "UPDATE_CHECK_INTERVAL": ("update", "check_interval_hours"),
    "GITHUB_BRANCH": ("update", "branch"),
    "GITHUB_REPO": ("update", "repository"),
    "DAYS": ("wp_cleanup", "days"),
    "DRY_RUN": ("wp_cleanup", "dry_run"),
    "LOG_LEVEL": (None, "log_level"),
}


def parse_positive_int(name: str, value: Any) -> int:
    """Parse a strictly positive integer setting.

    Raises:
        ConfigurationError: If the value is not a positive integer

    """
    if isinstance(value, bool):
        error_msg = f"{name} must be a positive integer (provided: {value})"
        raise ConfigurationError(error_msg)
    text = str(value).strip()
    if not text.isdigit() or int(text) <= 0:
        error_msg = f"{name} must be a positive integer (provided: {value})"
        raise ConfigurationError(error_msg)
    return int(text)


def parse_bool(name: str, value: Any, *, strict: bool = True) -> bool:
    """Parse a true/false setting.

    With ``strict=False`` anything other than ``true`` is false, which is how
    AUTO_UPDATE has always been read.

    Raises:
        ConfigurationError: If strict and the value is neither true nor false

    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false" or not strict:
        return False
    error_msg = f"{name} must be true or false (provided: {value})"
    raise ConfigurationError(error_msg)


@dataclass
class UpdateSettings:
    """Self-update settings shared by all tasks."""

    auto_update: bool = False
    check_interval_hours: int = 24
    repository: str = DEFAULT_REPOSITORY
    branch: str = DEFAULT_BRANCH
    timeout_seconds: float | None = 60
    interpreter_marker: str = "python"
    executable_path: Path | None = None

    def __post_init__(self) -> None:
        """Normalize and validate values after initialization."""
        self.auto_update = parse_bool("AUTO_UPDATE", self.auto_update, strict=False)
        self.check_interval_hours = parse_positive_int(
            "UPDATE_CHECK_INTERVAL",
            self.check_interval_hours,
        )
        if not str(self.branch).strip():
            error_msg = "GITHUB_BRANCH cannot be empty"
            raise ConfigurationError(error_msg)
        if not str(self.repository).strip() or "/" not in str(self.repository):
            error_msg = f"GITHUB_REPO must look like owner/name (provided: {self.repository})"
            raise ConfigurationError(error_msg)
        if self.executable_path is not None:
            self.executable_path = Path(self.executable_path)

    @property
    def check_interval_seconds(self) -> int:
        """Minimum time between automatic checks."""
        return self.check_interval_hours * SECONDS_PER_HOUR


@dataclass
class MySQLBackupSettings:
    """Settings of the MySQL dump task."""

    backup_dir: Path = Path("/backup/mysql/data")
    lock_file: Path = Path("/backup/mysql/mysql.pid")
    plesk_bin: Path = Path("/usr/sbin/plesk")
    excluded_databases: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_DATABASES),
    )
    update_path: str = "src/pleskops/mysql_backup/mysql_backup.py"

    def __post_init__(self) -> None:
        """Normalize path values after initialization."""
        self.backup_dir = Path(self.backup_dir)
        self.lock_file = Path(self.lock_file)
        self.plesk_bin = Path(self.plesk_bin)
        if not isinstance(self.excluded_databases, list):
            error_msg = "excluded_databases must be a list of names"
            raise ConfigurationError(error_msg)
        self.excluded_databases = [str(name) for name in self.excluded_databases]


@dataclass
class WPCleanupSettings:
    """Settings of the WordPress backup retention sweep."""

    search_pattern: str = "/var/www/vhosts/*/wordpress-backups"
    days: int = 365
    dry_run: bool = False
    lock_file: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "pleskops_wp_backup_cleanup.lock",
    )
    update_path: str = "src/pleskops/wp_cleanup/wp_backup_cleanup.py"

    def __post_init__(self) -> None:
        """Validate values after initialization."""
        self.days = parse_positive_int("DAYS", self.days)
        self.dry_run = parse_bool("DRY_RUN", self.dry_run)
        self.lock_file = Path(self.lock_file)
        if not str(self.search_pattern).strip():
            error_msg = "search_pattern cannot be empty"
            raise ConfigurationError(error_msg)


@dataclass
class Settings:
    """All settings of one invocation."""

    update: UpdateSettings = field(default_factory=UpdateSettings)
    mysql_backup: MySQLBackupSettings = field(default_factory=MySQLBackupSettings)
    wp_cleanup: WPCleanupSettings = field(default_factory=WPCleanupSettings)
    log_level: str = "INFO"


class ConfigManager:
    """Loads and validates settings."""

    SECTIONS = {
        "update": UpdateSettings,
        "mysql_backup": MySQLBackupSettings,
        "wp_cleanup": WPCleanupSettings,
    }

    @staticmethod
    def load_yaml(config_path: Path) -> dict[str, Any]:
        """Load the YAML configuration file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed

        """
        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            error_msg = f"Configuration file not found: {config_path}"
            raise ConfigurationError(error_msg) from e
        except (OSError, yaml.YAMLError) as e:
            error_msg = f"Failed to load configuration file {config_path}: {e}"
            raise ConfigurationError(error_msg) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            error_msg = f"Configuration file {config_path} must contain a mapping"
            raise ConfigurationError(error_msg)
        return data

    @staticmethod
    def load_env_file(env_file: Path) -> dict[str, str]:
        """Load variables from a dotenv file.

        Raises:
            ConfigurationError: If the file does not exist

        """
        if not env_file.exists():
            error_msg = f"Environment file not found: {env_file}"
            raise ConfigurationError(error_msg)
        values = dotenv_values(env_file)
        return {key: value for key, value in values.items() if value is not None}

    @classmethod
    def load_settings(
        cls,
        config_path: Path | None = None,
        env_file: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """Build the settings of one invocation.

        Args:
            config_path: Optional YAML configuration file
            env_file: Optional dotenv file
            environ: Environment to read, ``os.environ`` by default

        Returns:
            Validated Settings instance

        Raises:
            ConfigurationError: If any source is unreadable or a value is invalid

        """
        data = cls.load_yaml(config_path) if config_path is not None else {}

        sections: dict[str, dict[str, Any]] = {}
        for name in cls.SECTIONS:
            section = data.get(name) or {}
            if not isinstance(section, dict):
                error_msg = f"Configuration section '{name}' must be a mapping"
                raise ConfigurationError(error_msg)
            sections[name] = dict(section)
        log_level = str(data.get("log_level", "INFO"))

        variables: dict[str, str] = {}
        if env_file is not None:
            variables.update(cls.load_env_file(env_file))
        variables.update(os.environ if environ is None else environ)

        for variable, (section_name, key) in ENV_OVERRIDES.items():
            if variable not in variables:
                continue
            if section_name is None:
                log_level = variables[variable]
            else:
                sections[section_name][key] = variables[variable]

        try:
            return Settings(
                update=UpdateSettings(**sections["update"]),
                mysql_backup=MySQLBackupSettings(**sections["mysql_backup"]),
                wp_cleanup=WPCleanupSettings(**sections["wp_cleanup"]),
                log_level=log_level.upper(),
            )
        except TypeError as e:
            error_msg = f"Unknown configuration key: {e}"
            raise ConfigurationError(error_msg) from e
