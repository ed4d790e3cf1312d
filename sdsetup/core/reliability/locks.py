"""
Package-manager lock waiting.

apt refuses to run while another process (unattended-upgrades, a
second installer) holds its lock files. Poll until they are free, but
never hang forever.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from sdsetup.adapters.base import Runner
from sdsetup.core.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class LockWaiter:
    """Wait for apt/dpkg lock files to be released.

    A lock is considered held while ``fuser <file>`` exits 0.
    """

    def __init__(
        self,
        runner: Runner,
        lock_files: Sequence[str],
        *,
        interval: float = 2.0,
        max_polls: int = 120,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._runner = runner
        self._lock_files = list(lock_files)
        self._interval = interval
        self._max_polls = max_polls
        self._sleep = sleep

    def held_locks(self) -> list[str]:
        """Lock files that currently have a holder."""
        return [
            path
            for path in self._lock_files
            if self._runner.run(["fuser", path]).ok
        ]

    def wait(self) -> int:
        """Block until no lock is held.

        Returns:
            Number of polls that found a lock held.

        Raises:
            LockTimeoutError: If the locks are still held after
                ``max_polls`` polls.
        """
        logger.info("Waiting for apt/dpkg locks (if any)...")
        polls = 0
        while True:
            held = self.held_locks()
            if not held:
                if polls:
                    logger.info("Package locks released after %d poll(s)", polls)
                return polls
            polls += 1
            if polls > self._max_polls:
                raise LockTimeoutError(
                    f"apt/dpkg lock held too long ({', '.join(held)}); "
                    f"gave up after {self._max_polls} polls"
                )
            logger.debug("Lock held: %s (poll %d/%d)", ", ".join(held), polls, self._max_polls)
            self._sleep(self._interval)
