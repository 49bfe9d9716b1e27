"""MySQL database backups through the Plesk CLI."""

from .mysql_backup import MySQLBackup

__all__ = ["MySQLBackup"]
