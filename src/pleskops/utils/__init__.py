"""Utility functions for server operations."""

from .command import CommandResult, CommandRunner

__all__ = ["CommandResult", "CommandRunner"]
