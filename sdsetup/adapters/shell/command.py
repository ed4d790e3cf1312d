"""
Shell command runner — the single place ``subprocess.run`` is called.

All logging and error mapping for external commands is centralised
here. Output is captured and written to the log so the run log holds
the full trace of every command.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping

from sdsetup.adapters.base import Command, Runner, format_command
from sdsetup.core.models.result import CommandResult

logger = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127


class ShellCommandRunner(Runner):
    """Execute commands on the local machine and capture output."""

    def __init__(self, default_timeout: float | None = None) -> None:
        super().__init__()
        self._default_timeout = default_timeout

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self.search_path)

    def run(
        self,
        cmd: Command,
        *,
        shell: bool = False,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        command = format_command(cmd)
        timeout = timeout if timeout is not None else self._default_timeout

        full_env = os.environ.copy()
        full_env["PATH"] = self.search_path
        if env:
            full_env.update(env)

        logger.info("$ %s", command)
        if cwd:
            logger.debug("  (cwd=%s)", cwd)
        start = time.monotonic()

        try:
            proc = subprocess.run(
                command if shell else list(cmd),
                shell=shell,
                cwd=cwd,
                env=full_env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", timeout, command)
            return CommandResult(
                command=command,
                returncode=EXIT_TIMEOUT,
                stderr=f"Command timed out after {timeout}s",
                duration_ms=_elapsed_ms(start),
            )
        except FileNotFoundError as e:
            logger.error("Command not found: %s", e.filename or command)
            return CommandResult(
                command=command,
                returncode=EXIT_NOT_FOUND,
                stderr=f"command not found: {e.filename or command}",
                duration_ms=_elapsed_ms(start),
            )

        result = CommandResult(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=_elapsed_ms(start),
        )
        _log_output(result)
        return result


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _log_output(result: CommandResult) -> None:
    for line in result.stdout.splitlines():
        logger.debug("  │ %s", line)
    level = logging.DEBUG if result.ok else logging.ERROR
    for line in result.stderr.splitlines():
        logger.log(level, "  │ %s", line)
    if not result.ok:
        logger.error("Command failed (exit %d): %s", result.returncode, result.command)
