"""Retention sweep of WordPress backup files."""

from .wp_backup_cleanup import RetentionSweeper

__all__ = ["RetentionSweeper"]
