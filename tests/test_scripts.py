"""
Tests for launcher / remover script rendering.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from sdsetup.core.models.settings import InstallSettings
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.services.scripts import render_launcher, render_remover

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")
needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def _git(*args: str) -> str:
    proc = subprocess.run(["git", *args], capture_output=True, text=True, check=True)
    return proc.stdout.strip()


def _fake_env(target: InstallTarget) -> None:
    """A venv whose python only reports how it was called."""
    bin_dir = target.env_dir / "bin"
    bin_dir.mkdir(parents=True)
    (bin_dir / "activate").write_text(f'export PATH="{bin_dir}:$PATH"\n')
    python = bin_dir / "python"
    python.write_text('#!/bin/sh\necho "launched $*"\n')
    python.chmod(0o755)


def _stale_checkout(target: InstallTarget, settings: InstallSettings, origin: str) -> Path:
    repo = target.app_dir / settings.stale_repo_dir
    repo.mkdir(parents=True)
    _git("init", "-q", str(repo))
    _git("-C", str(repo), "remote", "add", "origin", origin)
    return repo


class TestLauncher:
    def test_content(self, target: InstallTarget, settings: InstallSettings):
        script = render_launcher(target, settings)
        text = script.content

        assert script.path == target.launcher_path
        assert text.startswith("#!/bin/bash\n")
        assert f"USER_HOME={target.home}" in text
        assert 'source "$VENV_DIR/bin/activate"' in text
        assert 'cd "$WEBUI_DIR"' in text
        assert "python launch.py --skip-torch-cuda-test --no-half --listen" in text

    def test_fixes_stale_remote(self, target: InstallTarget, settings: InstallSettings):
        text = render_launcher(target, settings).content
        assert 'REPO_DIR="$WEBUI_DIR/repositories/stable-diffusion-stability-ai"' in text
        assert f"OLD_URL_1={settings.legacy_urls[0]}" in text
        assert f"OLD_URL_2={settings.legacy_urls[1]}" in text
        assert '[ "$cur" = "$OLD_URL_1" ] || [ "$cur" = "$OLD_URL_2" ]' in text
        assert 'remote set-url origin "$NEW_URL"' in text

    def test_custom_flags_quoted(self, target: InstallTarget):
        settings = InstallSettings(launch_flags=["--port", "7861", "--ui-config-file", "a b.json"])
        text = render_launcher(target, settings).content
        assert "python launch.py --port 7861 --ui-config-file 'a b.json'" in text

    @needs_bash
    def test_valid_bash(self, target: InstallTarget, settings: InstallSettings):
        path = render_launcher(target, settings).write()
        proc = subprocess.run(["bash", "-n", str(path)], capture_output=True, text=True)
        assert proc.returncode == 0, proc.stderr


@needs_bash
@needs_git
class TestLauncherRun:
    def _launch(self, target: InstallTarget, settings: InstallSettings):
        path = render_launcher(target, settings).write()
        return subprocess.run(["bash", str(path)], capture_output=True, text=True)

    @pytest.mark.parametrize("variant", [0, 1])
    def test_rewrites_legacy_origin(self, target: InstallTarget, settings: InstallSettings, variant):
        _fake_env(target)
        repo = _stale_checkout(target, settings, settings.legacy_urls[variant])

        proc = self._launch(target, settings)

        assert proc.returncode == 0, proc.stderr
        assert "Fixing stable-diffusion-stability-ai remote URL" in proc.stdout
        assert "launched launch.py --skip-torch-cuda-test --no-half --listen" in proc.stdout
        assert _git("-C", str(repo), "remote", "get-url", "origin") == settings.replacement_url

    def test_leaves_other_origin_alone(self, target: InstallTarget, settings: InstallSettings):
        _fake_env(target)
        repo = _stale_checkout(target, settings, settings.replacement_url)

        proc = self._launch(target, settings)

        assert proc.returncode == 0, proc.stderr
        assert "Fixing" not in proc.stdout
        assert _git("-C", str(repo), "remote", "get-url", "origin") == settings.replacement_url

    def test_no_checkout_still_launches(self, target: InstallTarget, settings: InstallSettings):
        _fake_env(target)
        target.app_dir.mkdir()

        proc = self._launch(target, settings)

        assert proc.returncode == 0, proc.stderr
        assert "launched launch.py" in proc.stdout


class TestRemover:
    def test_content(self, target: InstallTarget, settings: InstallSettings):
        text = render_remover(target, settings).content
        assert 'rm -f "$USER_HOME/run_sd.sh" || true' in text
        assert 'rm -rf "$USER_HOME/stable-diffusion-webui" || true' in text
        assert 'rm -rf "$USER_HOME/stable-diffusion-env" || true' in text
        assert 'rm -f "$USER_HOME/remove.sh" || true' in text
        assert text.rstrip().endswith("exit 0")

    @needs_bash
    def test_runs_on_empty_home(self, target: InstallTarget, settings: InstallSettings):
        path = render_remover(target, settings).write()
        proc = subprocess.run(["bash", str(path)], capture_output=True, text=True)
        assert proc.returncode == 0
        assert "Cleanup complete." in proc.stdout
        assert not path.exists()

    @needs_bash
    def test_removes_install(self, target: InstallTarget, settings: InstallSettings):
        for d in target.owned_dirs:
            (d / "sub").mkdir(parents=True)
        render_launcher(target, settings).write()
        path = render_remover(target, settings).write()
        keep = target.home / "unrelated.txt"
        keep.write_text("stay")

        proc = subprocess.run(["bash", str(path)], capture_output=True, text=True)
        assert proc.returncode == 0
        for p in (target.app_dir, target.env_dir, target.launcher_path, target.remover_path):
            assert not p.exists()
        assert keep.read_text() == "stay"

    @needs_bash
    def test_home_with_spaces(self, tmp_path: Path, settings: InstallSettings):
        home = tmp_path / "my home"
        home.mkdir()
        target = InstallTarget.for_home(home, settings)
        target.app_dir.mkdir()
        path = render_remover(target, settings).write()
        proc = subprocess.run(["bash", str(path)], capture_output=True, text=True)
        assert proc.returncode == 0
        assert not target.app_dir.exists()
