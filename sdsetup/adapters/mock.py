"""
Mock runner — test double for every external command.

Used by the test suite and by ``sdsetup install --mock`` to walk the
whole pipeline without touching the machine. Succeeds by default;
individual commands can be configured to fail or to run a handler.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from sdsetup.adapters.base import Command, Runner, format_command
from sdsetup.core.models.result import CommandResult

Handler = Callable[[str], "CommandResult | None"]


@dataclass
class MockCall:
    """One recorded invocation."""

    command: str
    shell: bool = False
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class _Rule:
    prefix: str
    returncode: int = 1
    stderr: str = "mock failure"
    times: int | None = None  # None = fail forever
    handler: Handler | None = None


class MockRunner(Runner):
    """Universal mock runner.

    Rules match on the rendered command string: a rule applies when the
    command starts with (or, for ``sudo`` commands, continues with) the
    configured prefix. The most recently added matching rule wins.
    """

    def __init__(self, missing: set[str] | None = None) -> None:
        super().__init__()
        self._rules: list[_Rule] = []
        self._missing: set[str] = set(missing or ())
        self._calls: list[MockCall] = []

    @property
    def calls(self) -> list[MockCall]:
        """All calls this mock has received."""
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def commands(self) -> list[str]:
        return [c.command for c in self._calls]

    def called(self, prefix: str) -> bool:
        """Whether any recorded command matches ``prefix``."""
        return any(_matches(c.command, prefix) for c in self._calls)

    def set_failure(
        self,
        prefix: str,
        *,
        returncode: int = 1,
        stderr: str = "mock failure",
        times: int | None = None,
    ) -> None:
        """Make commands matching ``prefix`` fail (``times`` times, or always)."""
        self._rules.append(_Rule(prefix, returncode=returncode, stderr=stderr, times=times))

    def set_handler(self, prefix: str, handler: Handler) -> None:
        """Run ``handler(command)`` for matching commands.

        A handler returning None falls back to the default success.
        """
        self._rules.append(_Rule(prefix, returncode=0, handler=handler))

    def set_missing(self, *names: str) -> None:
        self._missing.update(names)

    def set_available(self, *names: str) -> None:
        self._missing.difference_update(names)

    def which(self, name: str) -> str | None:
        if name in self._missing:
            return None
        return f"/usr/bin/{name}"

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
        self._calls.append(
            MockCall(
                command=command,
                shell=shell,
                cwd=os.fspath(cwd) if cwd is not None else None,
                env=dict(env or {}),
            )
        )

        for rule in reversed(self._rules):
            if not _matches(command, rule.prefix):
                continue
            if rule.handler is not None:
                result = rule.handler(command)
                if result is not None:
                    return result
                break
            if rule.times is not None:
                if rule.times <= 0:
                    continue
                rule.times -= 1
            return CommandResult(
                command=command,
                returncode=rule.returncode,
                stderr=rule.stderr,
            )

        return CommandResult(command=command, stdout="[mock] executed")

    @classmethod
    def idle_machine(cls) -> MockRunner:
        """A mock where no package-manager lock is held."""
        runner = cls()
        runner.set_failure("fuser", returncode=1, stderr="")
        return runner

    def reset(self) -> None:
        """Clear call log and rules."""
        self._calls.clear()
        self._rules.clear()


def _matches(command: str, prefix: str) -> bool:
    if command.startswith(prefix):
        return True
    if not command.startswith("sudo "):
        return False
    # skip sudo and any KEY=VALUE assignments it passes through
    words = command[5:].split(" ")
    while words and "=" in words[0]:
        words.pop(0)
    return " ".join(words).startswith(prefix)
