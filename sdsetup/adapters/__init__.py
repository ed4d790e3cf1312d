"""Adapters — command runners for external tools.

Public re-exports for convenient access.
"""

from sdsetup.adapters.base import Runner, format_command
from sdsetup.adapters.mock import MockRunner
from sdsetup.adapters.shell.command import ShellCommandRunner

__all__ = [
    "MockRunner",
    "Runner",
    "ShellCommandRunner",
    "format_command",
]
