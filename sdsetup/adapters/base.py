"""
Runner base — the protocol between stages and external commands.

Stages never call ``subprocess`` directly; they go through a Runner.
That keeps every side effect in one place and lets tests (and
``--mock`` runs) swap in a MockRunner.
"""

from __future__ import annotations

import os
import shlex
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from sdsetup.core.models.result import CommandResult

Command = Sequence[str] | str


def format_command(cmd: Command) -> str:
    """Render a command the way it would be typed in a shell."""
    if isinstance(cmd, str):
        return cmd
    return shlex.join(cmd)


class Runner(ABC):
    """Abstract base class for command runners.

    Runners return CommandResults. They NEVER raise for a non-zero
    exit — failures are captured in the result.
    """

    def __init__(self) -> None:
        self._extra_path: list[str] = []

    @abstractmethod
    def run(
        self,
        cmd: Command,
        *,
        shell: bool = False,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``cmd`` and return its result."""

    @abstractmethod
    def which(self, name: str) -> str | None:
        """Resolve an executable on the runner's PATH."""

    def add_to_path(self, directory: str | os.PathLike[str]) -> None:
        """Prepend ``directory`` to PATH for every later command."""
        entry = os.fspath(directory)
        if entry not in self._extra_path:
            self._extra_path.insert(0, entry)

    @property
    def search_path(self) -> str:
        parts = [*self._extra_path, os.environ.get("PATH", os.defpath)]
        return os.pathsep.join(p for p in parts if p)

    def as_root(self, cmd: Sequence[str], env: Mapping[str, str] | None = None) -> list[str]:
        """Prefix ``sudo`` unless already running as root.

        sudo resets the environment, so ``env`` is passed as
        ``KEY=VALUE`` arguments on its command line.
        """
        if os.geteuid() == 0:
            return list(cmd)
        assignments = [f"{k}={v}" for k, v in (env or {}).items()]
        return ["sudo", *assignments, *cmd]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
