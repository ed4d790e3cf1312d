"""
Installer exceptions.

Ordinary command failures are reported through result objects; these
exceptions cover structural problems where retrying cannot help.
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for installer errors.

    ``exit_code`` is what the process exits with when the error is fatal.
    """

    exit_code = 1


class PreconditionError(InstallError):
    """A required command or tool is missing."""


class LockTimeoutError(InstallError):
    """The package-manager lock was held for too long."""
