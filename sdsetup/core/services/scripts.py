"""
Launcher and remover script rendering.

Both scripts are standalone bash with the install paths baked in; they
need nothing from the installer process at run time.
"""

from __future__ import annotations

import shlex

from sdsetup.core.models.settings import InstallSettings
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.models.template import GeneratedFile


_LAUNCHER_TEMPLATE = """\
#!/bin/bash
set -eEuo pipefail

USER_HOME={home}
WEBUI_DIR="$USER_HOME/{app_dir}"
VENV_DIR="$USER_HOME/{env_dir}"

{legacy_vars}
NEW_URL={new_url}

source "$VENV_DIR/bin/activate"
cd "$WEBUI_DIR"

# Last-chance remote fix: the vendored checkout may have been re-cloned
# from the retired upstream.
REPO_DIR="$WEBUI_DIR/{stale_dir}"
if [ -d "$REPO_DIR/.git" ]; then
  cur="$(git -C "$REPO_DIR" remote get-url origin 2>/dev/null || true)"
  if {legacy_test}; then
    echo "Fixing {stale_name} remote URL..."
    git -C "$REPO_DIR" remote set-url origin "$NEW_URL"
  fi
fi

python {entrypoint} {flags}
"""

_REMOVER_TEMPLATE = """\
#!/bin/bash
set -eEuo pipefail
USER_HOME={home}
rm -f "$USER_HOME/{launcher}" || true
rm -rf "$USER_HOME/{app_dir}" || true
rm -rf "$USER_HOME/{env_dir}" || true
rm -f "$USER_HOME/{remover}" || true
echo "Cleanup complete."
exit 0
"""


def _dq(value: str) -> str:
    """Escape a value for use inside a double-quoted bash string."""
    for ch in ("\\", '"', "$", "`"):
        value = value.replace(ch, "\\" + ch)
    return value


def render_launcher(target: InstallTarget, settings: InstallSettings) -> GeneratedFile:
    """Render ``run_sd.sh``."""
    legacy_vars = "\n".join(
        f"OLD_URL_{i}={shlex.quote(url)}"
        for i, url in enumerate(settings.legacy_urls, start=1)
    )
    legacy_test = " || ".join(
        f'[ "$cur" = "$OLD_URL_{i}" ]'
        for i in range(1, len(settings.legacy_urls) + 1)
    )
    content = _LAUNCHER_TEMPLATE.format(
        home=shlex.quote(str(target.home)),
        app_dir=_dq(target.app_dir.name),
        env_dir=_dq(target.env_dir.name),
        legacy_vars=legacy_vars,
        new_url=shlex.quote(settings.replacement_url),
        stale_dir=_dq(settings.stale_repo_dir),
        stale_name=settings.stale_repo_dir.rstrip("/").rsplit("/", 1)[-1],
        legacy_test=legacy_test,
        entrypoint=shlex.quote(settings.launch_entrypoint),
        flags=" ".join(shlex.quote(f) for f in settings.launch_flags),
    )
    return GeneratedFile(
        path=target.launcher_path,
        content=content,
        reason="Launch the WebUI (CPU, full precision, listening on all interfaces)",
    )


def render_remover(target: InstallTarget, settings: InstallSettings) -> GeneratedFile:
    """Render ``remove.sh``."""
    content = _REMOVER_TEMPLATE.format(
        launcher=_dq(target.launcher_path.name),
        home=shlex.quote(str(target.home)),
        app_dir=_dq(target.app_dir.name),
        env_dir=_dq(target.env_dir.name),
        remover=_dq(target.remover_path.name),
    )
    return GeneratedFile(
        path=target.remover_path,
        content=content,
        reason="Remove everything the installer created",
    )
