"""Running external tools and capturing their outcome."""

import logging
import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127
OWNER_ONLY_FILE_MODE = 0o600


@dataclass(frozen=True)
class CommandResult:
    """Exit status and output of one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0


class CommandRunner:
    """Runs external commands such as the Plesk CLI."""

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize the runner with a logger."""
        self.logger = logger

    def run(
        self,
        args: Sequence[str | os.PathLike[str]],
        stdout_path: Path | None = None,
    ) -> CommandResult:
        """Run a command and wait for it.

        Args:
            args: Program and arguments
            stdout_path: If given, stream stdout into this file instead of
                capturing it; the file is created readable by the owner only

        Returns:
            CommandResult with the exit status and captured output. A program
            that does not exist yields return code 127, one that cannot be
            started otherwise yields 126.

        Raises:
            OSError: If ``stdout_path`` cannot be created

        """
        cmd = tuple(str(arg) for arg in args)
        self.logger.debug(f"Running: {' '.join(cmd)}")

        if stdout_path is not None:
            return self._run_to_file(cmd, stdout_path)

        try:
            completed = subprocess.run(  # noqa: S603
                cmd,
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            return self._launch_failed(cmd, e)
        return CommandResult(cmd, completed.returncode, completed.stdout, completed.stderr)

    def _run_to_file(self, cmd: tuple[str, ...], stdout_path: Path) -> CommandResult:
        fd = os.open(
            stdout_path,
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
            OWNER_ONLY_FILE_MODE,
        )
        with os.fdopen(fd, "wb") as f_out:
            try:
                completed = subprocess.run(  # noqa: S603
                    cmd,
                    check=False,
                    stdout=f_out,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                return self._launch_failed(cmd, e)
        return CommandResult(
            cmd,
            completed.returncode,
            "",
            completed.stderr.decode("utf-8", errors="replace"),
        )

    def _launch_failed(self, cmd: tuple[str, ...], error: OSError) -> CommandResult:
        """Map a program that could not be started to a shell-style status."""
        if isinstance(error, FileNotFoundError):
            self.logger.warning(f"Command not found: {cmd[0]}")
            return CommandResult(cmd, COMMAND_NOT_FOUND, "", str(error))
        self.logger.warning(f"Cannot execute {cmd[0]}: {error}")
        return CommandResult(cmd, COMMAND_NOT_EXECUTABLE, "", str(error))
