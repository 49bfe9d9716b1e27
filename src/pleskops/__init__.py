"""pleskops - Scheduled maintenance tasks for Plesk hosting servers.

Database dumps through the Plesk CLI and WordPress backup retention sweeps,
run under a PID-file instance lock with an optional self-update step.
"""

__version__ = "0.1.0"
__author__ = "pleskops Team"
__email__ = "pleskops@example.com"

from . import exceptions, logging

__all__ = ["exceptions", "logging"]
