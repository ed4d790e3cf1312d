"""
sdsetup — CLI entrypoint.

Usage:
    python -m sdsetup.main --help
    python -m sdsetup.main install --no-models
    python -m sdsetup.main remove
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from sdsetup import __version__
from sdsetup.core.observability.logging_config import setup_logging


def _console_level(ctx: click.Context, default: str) -> str:
    if ctx.obj.get("debug"):
        return "DEBUG"
    if ctx.obj.get("verbose"):
        return "INFO"
    if ctx.obj.get("quiet"):
        return "ERROR"
    return default


def configure_logging(
    ctx: click.Context,
    log_file: Path | None = None,
    *,
    default_level: str = "WARNING",
) -> None:
    """Logging setup (once per command, after the log path is known).

    Progress lines are INFO, so only install shows them by default.
    """
    setup_logging(
        level=_console_level(ctx, default_level),
        log_file=log_file,
        verbose_format=bool(ctx.obj.get("verbose")),
        quiet_third_party=not ctx.obj.get("debug"),
    )


def load_cli_settings(ctx: click.Context):
    """Load settings for a command, exiting with a message on bad config."""
    from sdsetup.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(e.exit_code)


def resolve_target(ctx: click.Context, home: Path | None, settings=None):
    """Build the InstallTarget for ``--home`` or the caller's home."""
    from sdsetup.core.models.target import InstallTarget, resolve_home

    settings = settings or load_cli_settings(ctx)
    return InstallTarget.for_home(home or resolve_home(), settings)


_home_option = click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Install under this directory (default: ~$USER).",
)


@click.group()
@click.version_option(version=__version__, prog_name="sdsetup")
@click.option("--verbose", "-v", is_flag=True, help="Timestamped console output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to sdsetup.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """sdsetup — install, launch and remove Stable Diffusion WebUI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


@cli.command()
@_home_option
@click.option(
    "--models/--no-models",
    default=None,
    help="Download model files (default: from config, on).",
)
@click.option("--mock", is_flag=True, help="Use the mock runner (no external commands).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    home: Path | None,
    models: bool | None,
    mock: bool,
    as_json: bool,
) -> None:
    """Run the full install; roll back on failure.

    Examples:

        sdsetup install

        sdsetup install --no-models

        sdsetup --debug install --home /srv/sd
    """
    from sdsetup.adapters.mock import MockRunner
    from sdsetup.adapters.shell.command import ShellCommandRunner
    from sdsetup.core.engine.orchestrator import InstallOrchestrator
    from sdsetup.core.stages.base import StageContext

    settings = load_cli_settings(ctx)
    if models is not None:
        settings = settings.model_copy(update={"download_models": models})

    target = resolve_target(ctx, home, settings)
    target.home.mkdir(parents=True, exist_ok=True)
    configure_logging(ctx, log_file=target.log_file, default_level="INFO")

    if mock:
        stage_ctx = StageContext(
            runner=MockRunner.idle_machine(),
            settings=settings,
            sleep=lambda _s: None,
            probe=lambda url, timeout=0: {"reachable": True, "url": url, "mock": True},
        )
    else:
        stage_ctx = StageContext(runner=ShellCommandRunner(), settings=settings)

    report = InstallOrchestrator(stage_ctx, target).run()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(report.exit_code)

    if report.ok:
        click.echo()
        click.secho("✅ Setup complete", fg="green", bold=True)
        click.echo(f"   Start with: {target.launcher_path}")
        click.echo(f"   Remove with: {target.remover_path}")
        click.echo(f"   Log: {target.log_file}")
        click.echo()
        return

    failure = report.failure
    assert failure is not None  # guaranteed when not ok
    click.echo()
    click.secho(
        f"❌ ERROR (exit={report.exit_code}) at {failure.location or 'unknown'}: "
        f"{failure.command or failure.error}",
        fg="red",
        bold=True,
    )
    if failure.command and failure.error:
        click.echo(f"   {failure.error}")
    click.echo()
    click.echo(f"---- last {len(report.log_tail)} log lines ----")
    for line in report.log_tail:
        click.echo(line)
    click.echo("----------------------------")
    click.echo()
    if report.rolled_back:
        click.secho("🧹 Partial install cleaned up", fg="yellow")
    click.secho("Log saved at: ", fg="yellow", nl=False)
    click.echo(str(target.log_file))
    sys.exit(report.exit_code)


@cli.command()
@_home_option
@click.pass_context
def remove(ctx: click.Context, home: Path | None) -> None:
    """Delete the launcher, WebUI, environment and remover script."""
    from sdsetup.core.services.removal import remove_installation

    configure_logging(ctx)
    target = resolve_target(ctx, home)
    removed = remove_installation(target)

    if not ctx.obj.get("quiet"):
        for path in removed:
            click.echo(f"   🗑️  {path}")
    click.secho("Cleanup complete.", fg="green")


@cli.command()
@_home_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, home: Path | None, as_json: bool) -> None:
    """Show whether the WebUI is installed."""
    configure_logging(ctx)
    target = resolve_target(ctx, home)
    state = target.observed_state()
    paths = {
        "app_dir": target.app_dir,
        "env_dir": target.env_dir,
        "launcher": target.launcher_path,
        "remover": target.remover_path,
    }

    if as_json:
        click.echo(json.dumps({
            "state": state.value,
            "home": str(target.home),
            "paths": {k: {"path": str(p), "exists": p.exists()} for k, p in paths.items()},
        }, indent=2))
        return

    color = {"installed": "green", "partial": "yellow", "absent": "white"}[state.value]
    click.secho(f"\n📦 Stable Diffusion WebUI: {state.value}", fg=color, bold=True)
    for label, path in paths.items():
        mark = "✓" if path.exists() else "✗"
        click.echo(f"   {mark} {label:<9} {path}")
    click.echo()


# ── Register sub-command groups from sdsetup/ui/cli/ ──────────────

from sdsetup.ui.cli.tools import tools  # noqa: E402

cli.add_command(tools)


if __name__ == "__main__":
    cli()
