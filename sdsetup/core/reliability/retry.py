"""
Bounded retry with a fixed delay between attempts.

Wraps flaky, naturally idempotent operations (downloads, clones,
package installs). Callers own any cleanup between attempts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sdsetup.adapters.base import Runner, format_command
from sdsetup.core.models.result import CommandResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait in between."""

    attempts: int = 3
    delay: float = 3.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")


@dataclass
class RetryOutcome:
    """Result of a retried action."""

    result: CommandResult
    attempts_made: int
    slept: float = 0.0

    @property
    def ok(self) -> bool:
        return self.result.ok


def retry(
    policy: RetryPolicy,
    action: Callable[[], CommandResult],
    *,
    label: str = "",
    sleep: Sleep = time.sleep,
    before_retry: Callable[[], None] | None = None,
) -> RetryOutcome:
    """Run ``action`` until it succeeds or the policy is exhausted.

    Each failed attempt that still has a successor is logged as a
    warning, followed by ``policy.delay`` seconds of sleep. The final
    failure is returned without sleeping.

    Args:
        policy: Attempt budget and delay.
        action: Zero-arg callable returning a CommandResult.
        label: Human-readable description for log lines.
        sleep: Sleep function (injected by tests).
        before_retry: Optional cleanup run before each retry attempt.

    Returns:
        RetryOutcome carrying the last result.
    """
    slept = 0.0
    attempt = 1
    while True:
        result = action()
        if result.ok:
            if attempt > 1:
                logger.info("Succeeded on attempt %d/%d: %s", attempt, policy.attempts, label)
            return RetryOutcome(result=result, attempts_made=attempt, slept=slept)

        if attempt >= policy.attempts:
            logger.error(
                "Giving up after %d attempt(s): %s", policy.attempts, label or result.command,
            )
            return RetryOutcome(result=result, attempts_made=attempt, slept=slept)

        logger.warning("Retry %d/%d failed: %s", attempt, policy.attempts, label or result.command)
        sleep(policy.delay)
        slept += policy.delay
        if before_retry is not None:
            before_retry()
        attempt += 1


def run_with_retry(
    runner: Runner,
    cmd: Sequence[str] | str,
    policy: RetryPolicy,
    *,
    sleep: Sleep = time.sleep,
    before_retry: Callable[[], None] | None = None,
    **run_kwargs,
) -> RetryOutcome:
    """Retry a single runner command under ``policy``."""
    return retry(
        policy,
        lambda: runner.run(cmd, **run_kwargs),
        label=format_command(cmd),
        sleep=sleep,
        before_retry=before_retry,
    )
