"""
URL patching over a source tree.

The cloned WebUI references the retired Stability-AI repository in one
of two spellings (with and without ``.git``). This module rewrites both
to the maintained fork, everywhere in the tree, exactly once per file.

Split in two halves:
    - ``snapshot_tree`` / ``plan_patches`` — read-only; the plan is a pure
      function of the snapshot, so files rewritten mid-pass are never
      re-scanned.
    - ``apply_patch`` — per-file transaction: re-verify, back up, rewrite.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({".git", "venv"})
SKIP_SUFFIXES = (".pyc",)
BINARY_SNIFF_BYTES = 8192
BACKUP_STAMP_FORMAT = "%Y-%m-%d_%H%M%S"

# Backups written by an earlier pass: <name>.bak.YYYY-MM-DD_HHMMSS
_BACKUP_RE = re.compile(r"\.bak\.\d{4}-\d{2}-\d{2}_\d{6}$")

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass
class PatchTarget:
    """One file scheduled for rewriting."""

    path: Path
    matched: list[str]
    replacement: str
    new_content: str
    backup_path: Path
    original: str | None = None


@dataclass
class PatchReport:
    """What a patch pass did."""

    patched: list[Path] = field(default_factory=list)
    backups: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    removed_stale_dir: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.patched)

    def to_dict(self) -> dict:
        return {
            "changed": self.changed,
            "patched": [str(p) for p in self.patched],
            "backups": [str(p) for p in self.backups],
            "skipped": [str(p) for p in self.skipped],
            "removed_stale_dir": self.removed_stale_dir,
        }


# ── Read side ──────────────────────────────────────────────────


def is_backup_file(path: Path) -> bool:
    return bool(_BACKUP_RE.search(path.name))


def _read_text_file(path: Path) -> str | None:
    """Return file text, or None for binary files (NUL in the first block)."""
    try:
        with open(path, "rb") as f:
            head = f.read(BINARY_SNIFF_BYTES)
            if b"\0" in head:
                return None
            data = head + f.read()
    except OSError as e:
        logger.debug("Unreadable, skipping: %s (%s)", path, e)
        return None
    return data.decode(_ENCODING, _ERRORS)


def iter_candidate_files(root: Path) -> Iterable[Path]:
    """Regular files under ``root``, minus VCS/venv dirs, bytecode and backups."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if name.endswith(SKIP_SUFFIXES) or is_backup_file(path):
                continue
            if path.is_symlink() or not path.is_file():
                continue
            yield path


def snapshot_tree(root: Path) -> dict[Path, str]:
    """Map every text file under ``root`` to its content."""
    snapshot: dict[Path, str] = {}
    for path in iter_candidate_files(root):
        text = _read_text_file(path)
        if text is not None:
            snapshot[path] = text
    return snapshot


def find_matches(snapshot: Mapping[Path, str], legacy_urls: Sequence[str]) -> list[Path]:
    """Paths containing any legacy URL, one search per variant, de-duplicated."""
    candidates: list[Path] = []
    for url in legacy_urls:
        candidates.extend(path for path, text in snapshot.items() if url in text)
    return list(dict.fromkeys(candidates))


def substitute(text: str, legacy_urls: Sequence[str], replacement: str) -> str:
    """Replace every legacy URL occurrence in a single pass.

    Longer variants are tried first so ``.../stablediffusion.git`` is not
    rewritten as ``<replacement>.git``.
    """
    ordered = sorted(set(legacy_urls), key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(u) for u in ordered))
    return pattern.sub(lambda _m: replacement, text)


def backup_path_for(path: Path, stamp: str) -> Path:
    return path.with_name(f"{path.name}.bak.{stamp}")


def plan_patches(
    snapshot: Mapping[Path, str],
    legacy_urls: Sequence[str],
    replacement: str,
    *,
    stamp: str,
) -> list[PatchTarget]:
    """Build the rewrite plan for a snapshot. Pure: touches no files."""
    plan: list[PatchTarget] = []
    for path in find_matches(snapshot, legacy_urls):
        text = snapshot[path]
        plan.append(
            PatchTarget(
                path=path,
                matched=[u for u in legacy_urls if u in text],
                replacement=replacement,
                new_content=substitute(text, legacy_urls, replacement),
                backup_path=backup_path_for(path, stamp),
                original=text,
            )
        )
    return plan


# ── Write side ─────────────────────────────────────────────────


def _write_atomic(path: Path, text: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
            f.write(text)
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def apply_patch(target: PatchTarget, legacy_urls: Sequence[str]) -> bool:
    """Back up and rewrite one file.

    The file is re-read first: if it no longer contains a legacy URL it
    is left alone; if it changed since the snapshot, the substitution is
    recomputed from the current content.

    Returns:
        True if the file was rewritten.
    """
    current = _read_text_file(target.path)
    if current is None or not any(u in current for u in legacy_urls):
        logger.debug("No longer matches, skipping: %s", target.path)
        return False

    new_content = target.new_content
    if target.original is not None and current != target.original:
        logger.debug("Changed since snapshot, recomputing: %s", target.path)
        new_content = substitute(current, legacy_urls, target.replacement)

    shutil.copy2(target.path, target.backup_path)
    _write_atomic(target.path, new_content)
    return True


def remove_stale_dir(root: Path, relative: str) -> bool:
    """Delete a vendored checkout so it is re-fetched from the fixed remote."""
    stale = root / relative
    if not stale.exists() and not stale.is_symlink():
        return False
    if stale.is_dir() and not stale.is_symlink():
        shutil.rmtree(stale, ignore_errors=True)
    else:
        stale.unlink(missing_ok=True)
    logger.info("Removed stale checkout: %s", stale)
    return True


def patch_tree(
    root: Path,
    legacy_urls: Sequence[str],
    replacement: str,
    *,
    stale_dir: str | None = None,
    now: datetime | None = None,
) -> PatchReport:
    """Rewrite legacy URLs under ``root`` and drop the stale vendored checkout."""
    root = Path(root)
    stamp = (now or datetime.now()).strftime(BACKUP_STAMP_FORMAT)
    report = PatchReport()

    plan = plan_patches(snapshot_tree(root), legacy_urls, replacement, stamp=stamp)
    logger.debug("Patch plan: %d file(s)", len(plan))

    for target in plan:
        if apply_patch(target, legacy_urls):
            report.patched.append(target.path)
            report.backups.append(target.backup_path)
            logger.info("Patched: %s", target.path.relative_to(root))
        else:
            report.skipped.append(target.path)

    if stale_dir:
        report.removed_stale_dir = remove_stale_dir(root, stale_dir)

    if report.changed:
        logger.info("Patch applied.")
    else:
        logger.warning("No Stability-AI URL found to patch (may already be updated).")
    return report
