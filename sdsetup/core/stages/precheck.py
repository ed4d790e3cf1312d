"""
PRECHECK — required commands, system summary, network probe.

Nothing is mutated here, so a failure in this stage never triggers
rollback.
"""

from __future__ import annotations

import logging
import platform
import shutil
from pathlib import Path

from sdsetup.core.errors import PreconditionError
from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)

_OS_RELEASE = Path("/etc/os-release")


def read_os_release(path: Path = _OS_RELEASE) -> dict[str, str]:
    """Parse ``/etc/os-release`` into a dict (empty if absent)."""
    info: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return info
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() and not key.startswith("#"):
            info[key.strip()] = value.strip().strip('"').strip("'")
    return info


def _fmt_gib(n: int) -> str:
    return f"{n / (1024 ** 3):.1f} GiB"


def system_summary(home: Path) -> dict[str, str]:
    """OS, kernel, arch, disk and memory figures for the log."""
    release = read_os_release()
    summary = {
        "os": release.get("ID", "unknown"),
        "codename": release.get("VERSION_CODENAME", "unknown"),
        "kernel": " ".join(platform.uname()),
        "arch": platform.machine(),
    }
    try:
        usage = shutil.disk_usage(home)
        summary["disk_free"] = _fmt_gib(usage.free)
    except OSError:
        summary["disk_free"] = "unknown"
    try:
        for line in Path("/proc/meminfo").read_text().splitlines():
            if line.startswith("MemTotal:"):
                summary["memory"] = _fmt_gib(int(line.split()[1]) * 1024)
                break
    except (OSError, ValueError, IndexError):
        pass
    summary.setdefault("memory", "unknown")
    return summary


class PrecheckStage(Stage):
    """Verify required commands, log the machine, probe the network."""

    name = "precheck"

    def require_commands(self) -> None:
        missing = [c for c in self.settings.required_commands if self.runner.which(c) is None]
        if missing:
            raise PreconditionError(f"Missing command: {', '.join(missing)}")

    def run(self, target: InstallTarget) -> StageResult:
        logger.info("Log: %s", target.log_file)
        summary = system_summary(target.home)
        logger.info("Detected OS: %s (%s)", summary["os"], summary["codename"])
        logger.info("Kernel: %s", summary["kernel"])
        logger.info("Arch: %s", summary["arch"])
        logger.info("Disk free in %s: %s, memory: %s", target.home, summary["disk_free"], summary["memory"])

        try:
            self.require_commands()
        except PreconditionError as e:
            logger.error("%s", e)
            return StageResult.failure(self.name, str(e), exit_code=e.exit_code)

        probe = self.ctx.probe(self.settings.probe_url, timeout=self.settings.probe_timeout)
        return StageResult.success(
            self.name,
            "Preflight OK",
            metadata={"system": summary, "network": probe},
        )
