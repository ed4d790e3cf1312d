"""
Logging configuration for the installer CLI.

main.py calls ``setup_logging`` once per command; modules just do
``logger = logging.getLogger(__name__)``.

Two sinks:
    console  — stderr, level from --debug / --verbose / --quiet
    run log  — ``sd_install_<stamp>.log`` under the home directory,
               always DEBUG so a failed install can be diagnosed later
"""

from __future__ import annotations

import logging
import sys
from collections import deque
from pathlib import Path

# (format, datefmt) per console style
_CONSOLE_STYLES: dict[str, tuple[str, str | None]] = {
    "plain": ("%(message)s", None),
    "verbose": ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    "debug": ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
}

_RUN_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s"
_RUN_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers silenced below WARNING unless --debug
_CHATTY = ("urllib3", "charset_normalizer", "filelock")


def _console_handler(level: int, verbose: bool) -> logging.Handler:
    if level <= logging.DEBUG:
        style = "debug"
    else:
        style = "verbose" if verbose else "plain"
    fmt, datefmt = _CONSOLE_STYLES[style]

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _run_log_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_RUN_LOG_FORMAT, datefmt=_RUN_LOG_DATEFMT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    log_file_level: str = "DEBUG",
    verbose_format: bool = False,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with console (+ run log).

    Args:
        level: Console level name.
        log_file: Run log path; omitted for commands that do not install.
        log_file_level: Run log level name.
        verbose_format: Timestamped console lines above DEBUG.
        quiet_third_party: Hold chatty libraries at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level, verbose_format)]
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level)
        handlers.append(_run_log_handler(Path(log_file), file_level))
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _CHATTY:
            logging.getLogger(name).setLevel(logging.WARNING)

    # A closed console stream must not crash the installer mid-run.
    logging.raiseExceptions = False


def tail_log(path: str | Path, lines: int = 120) -> list[str]:
    """Last ``lines`` lines of ``path``; empty if it cannot be read."""
    for handler in logging.getLogger().handlers:
        handler.flush()
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return [line.rstrip("\n") for line in deque(f, maxlen=lines)]
    except OSError:
        return []


def _parse_level(name: str | None) -> int:
    value = logging.getLevelName(name.upper()) if name else logging.INFO
    return value if isinstance(value, int) else logging.INFO
