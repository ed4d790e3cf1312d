"""
Shared test fixtures and configuration.
"""

import logging
import shlex
from pathlib import Path

import pytest

from sdsetup.adapters.mock import MockRunner
from sdsetup.core.models.result import CommandResult
from sdsetup.core.models.settings import InstallSettings
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.stages.base import StageContext

LEGACY_GIT = "https://github.com/Stability-AI/stablediffusion.git"
LEGACY_BARE = "https://github.com/Stability-AI/stablediffusion"
REPLACEMENT = "https://github.com/comp6062/Stability-AI-stablediffusion.git"


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Return an empty home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def settings() -> InstallSettings:
    """Default settings with model downloads off."""
    return InstallSettings(download_models=False)


@pytest.fixture
def target(home_dir: Path, settings: InstallSettings) -> InstallTarget:
    return InstallTarget.for_home(home_dir, settings)


@pytest.fixture
def mock_runner() -> MockRunner:
    """A mock runner on a machine with no package-manager lock held."""
    return MockRunner.idle_machine()


@pytest.fixture
def sleeps() -> list[float]:
    """Records every sleep request instead of sleeping."""
    return []


@pytest.fixture
def stage_ctx(mock_runner: MockRunner, settings: InstallSettings, sleeps: list[float]) -> StageContext:
    return StageContext(
        runner=mock_runner,
        settings=settings,
        sleep=sleeps.append,
        probe=lambda url, timeout=0: {"reachable": True, "url": url},
    )


def _fake_clone(command: str) -> CommandResult:
    """Create a small WebUI-like checkout at the clone destination."""
    dest = Path(shlex.split(command)[-1])
    dest.mkdir(parents=True)
    (dest / "launch.py").write_text("print('launch')\n")
    (dest / "requirements.txt").write_text("gradio\n")
    (dest / "modules").mkdir()
    (dest / "modules" / "launch_utils.py").write_text(
        f'stable_diffusion_repo = os.environ.get("STABLE_DIFFUSION_REPO", "{LEGACY_GIT}")\n'
    )
    stale = dest / "repositories" / "stable-diffusion-stability-ai"
    (stale / ".git").mkdir(parents=True)
    (stale / ".git" / "config").write_text(f'[remote "origin"]\n\turl = {LEGACY_BARE}\n')
    return CommandResult(command=command, stdout="Cloning into...")


def _fake_venv(command: str) -> CommandResult:
    env_dir = Path(shlex.split(command)[-1])
    (env_dir / "bin").mkdir(parents=True)
    (env_dir / "bin" / "python").write_text("#!/bin/sh\n")
    return CommandResult(command=command)


@pytest.fixture
def fake_machine(mock_runner: MockRunner) -> MockRunner:
    """Mock runner whose clone and venv commands create real directories."""
    mock_runner.set_handler("git clone", _fake_clone)
    mock_runner.set_handler("uv venv", _fake_venv)
    return mock_runner


@pytest.fixture
def reset_logging():
    """Remove handlers a test installed on the root logger."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    for handler in before:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
