"""
Tests for CLI commands — status, tools, and global options.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from sdsetup.core.services import network
from sdsetup.main import cli

pytestmark = pytest.mark.usefixtures("reset_logging")

OLD = "https://github.com/Stability-AI/stablediffusion.git"


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch):
    """Keep config auto-detection away from any real sdsetup.yml."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_file(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", str(tmp_path / "nope.yml"), "status", "--home", str(tmp_path)],
        )
        assert result.exit_code == 2
        assert "Config file not found" in result.output

    def test_invalid_config(self, tmp_path: Path):
        config = tmp_path / "sdsetup.yml"
        config.write_text("install:\n  python_version: [3, 10]\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["-c", str(config), "status", "--home", str(tmp_path)])
        assert result.exit_code == 2
        assert "Invalid installer configuration" in result.output

    def test_config_changes_layout(self, tmp_path: Path, home_dir: Path):
        config = tmp_path / "sdsetup.yml"
        config.write_text("install:\n  app_dir_name: webui\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["-c", str(config), "status", "--home", str(home_dir), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["paths"]["app_dir"]["path"] == str(home_dir.resolve() / "webui")
        assert "Loaded installer config" not in result.output


class TestStatusCommand:
    def test_human_output(self, home_dir: Path):
        (home_dir / "stable-diffusion-webui").mkdir()
        runner = CliRunner()
        result = runner.invoke(cli, ["status", "--home", str(home_dir)])
        assert result.exit_code == 0
        assert "partial" in result.output
        assert "✓ app_dir" in result.output
        assert "✗ env_dir" in result.output

    def test_json(self, home_dir: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["status", "--home", str(home_dir), "--json"])
        data = json.loads(result.output)
        assert data["state"] == "absent"
        assert data["home"] == str(home_dir.resolve())
        assert set(data["paths"]) == {"app_dir", "env_dir", "launcher", "remover"}


class TestRemoveCommand:
    def test_removes_only_install(self, home_dir: Path):
        for name in ("stable-diffusion-webui", "stable-diffusion-env"):
            (home_dir / name / "x").mkdir(parents=True)
        (home_dir / "run_sd.sh").write_text("")
        (home_dir / "remove.sh").write_text("")
        (home_dir / "notes.txt").write_text("mine")

        runner = CliRunner()
        result = runner.invoke(cli, ["remove", "--home", str(home_dir)])
        assert result.exit_code == 0
        assert sorted(p.name for p in home_dir.iterdir()) == ["notes.txt"]


class TestToolsPatch:
    def test_patches_directory(self, tmp_path: Path):
        tree = tmp_path / "webui"
        tree.mkdir()
        (tree / "launch_utils.py").write_text(f'repo = "{OLD}"\n')

        runner = CliRunner()
        result = runner.invoke(cli, ["tools", "patch", str(tree)])
        assert result.exit_code == 0
        assert "Patched 1 file(s)" in result.output
        assert OLD not in (tree / "launch_utils.py").read_text()

    def test_json_and_idempotent(self, tmp_path: Path):
        tree = tmp_path / "webui"
        tree.mkdir()
        (tree / "a.txt").write_text(f"{OLD}\n")
        runner = CliRunner()

        first = json.loads(runner.invoke(cli, ["-q", "tools", "patch", str(tree), "--json"]).output)
        second = json.loads(runner.invoke(cli, ["-q", "tools", "patch", str(tree), "--json"]).output)
        assert first["changed"] is True
        assert len(first["backups"]) == 1
        assert second["changed"] is False
        assert second["patched"] == []

    def test_nothing_to_patch(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "tools", "patch", str(tmp_path)])
        assert result.exit_code == 0
        assert "No Stability-AI URL found" in result.output

    def test_missing_directory(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["tools", "patch", str(tmp_path / "missing")])
        assert result.exit_code != 0


    def test_progress_logs_need_verbose(self, tmp_path: Path):
        runner = CliRunner()
        for flags, shown in (([], False), (["-v"], True)):
            tree = tmp_path / f"webui{len(flags)}"
            tree.mkdir()
            (tree / "launch_utils.py").write_text(f"{OLD}\n")
            result = runner.invoke(cli, [*flags, "tools", "patch", str(tree)])
            assert result.exit_code == 0
            assert ("Patched: launch_utils.py" in result.output) is shown


class TestToolsProbe:
    def test_unreachable_still_exits_zero(self, monkeypatch):
        monkeypatch.setattr(
            network, "probe",
            lambda url, timeout: {"reachable": False, "url": url, "error": "dns", "latency_ms": 1},
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "tools", "probe"])
        assert result.exit_code == 0
        assert "Network probe failed: dns" in result.output

    def test_json(self, monkeypatch):
        monkeypatch.setattr(
            network, "probe",
            lambda url, timeout: {"reachable": True, "url": url, "status": 200, "latency_ms": 3},
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "tools", "probe", "--json"])
        assert json.loads(result.output)["status"] == 200


class TestToolsRender:
    def test_writes_scripts(self, home_dir: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "tools", "render", "--home", str(home_dir)])
        assert result.exit_code == 0
        assert (home_dir / "run_sd.sh").stat().st_mode & 0o111
        assert (home_dir / "remove.sh").exists()

    def test_stdout(self, home_dir: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "tools", "render", "--home", str(home_dir), "--stdout"])
        assert result.exit_code == 0
        assert "python launch.py --skip-torch-cuda-test --no-half --listen" in result.output
        assert "Cleanup complete." in result.output
        assert not (home_dir / "run_sd.sh").exists()
