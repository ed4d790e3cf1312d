"""
CLI commands for individual install steps.

Thin wrappers over the patch, network and script services, for
repairing or inspecting an install without re-running everything.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


@click.group()
def tools() -> None:
    """Tools — patch a checkout, probe the network, render scripts."""


@tools.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def patch(ctx: click.Context, directory: Path, as_json: bool) -> None:
    """Rewrite retired Stability-AI URLs under DIRECTORY."""
    from sdsetup.core.services.patching import patch_tree
    from sdsetup.main import configure_logging, load_cli_settings

    configure_logging(ctx)
    settings = load_cli_settings(ctx)
    report = patch_tree(
        directory,
        settings.legacy_urls,
        settings.replacement_url,
        stale_dir=settings.stale_repo_dir,
    )

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if not report.changed:
        click.secho("⚠️  No Stability-AI URL found to patch (may already be updated)", fg="yellow")
        return

    click.secho(f"🩹 Patched {len(report.patched)} file(s):", fg="green", bold=True)
    for path, backup in zip(report.patched, report.backups):
        click.echo(f"   • {path}")
        click.echo(f"     backup: {backup.name}")
    if report.removed_stale_dir:
        click.echo(f"   🗑️  removed {settings.stale_repo_dir}")


@tools.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def probe(ctx: click.Context, as_json: bool) -> None:
    """Check connectivity (advisory; always exits 0)."""
    from sdsetup.core.services.network import probe as run_probe
    from sdsetup.main import configure_logging, load_cli_settings

    configure_logging(ctx)
    settings = load_cli_settings(ctx)
    result = run_probe(settings.probe_url, timeout=settings.probe_timeout)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    if result["reachable"]:
        click.secho(f"🌐 Network OK ({result['latency_ms']}ms) → {result['url']}", fg="green")
    else:
        click.secho(f"⚠️  Network probe failed: {result['error']}", fg="yellow")
        click.echo("   This does not block install; downloads retry on their own.")


@tools.command()
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Install home (default: ~$USER).",
)
@click.option("--stdout", "to_stdout", is_flag=True, help="Print scripts instead of writing.")
@click.pass_context
def render(ctx: click.Context, home: Path | None, to_stdout: bool) -> None:
    """Write (or print) run_sd.sh and remove.sh."""
    from sdsetup.core.services.scripts import render_launcher, render_remover
    from sdsetup.main import configure_logging, load_cli_settings, resolve_target

    configure_logging(ctx)
    settings = load_cli_settings(ctx)
    target = resolve_target(ctx, home, settings)

    for generated in (render_launcher(target, settings), render_remover(target, settings)):
        if to_stdout:
            click.secho(f"# ── {generated.path} ──", fg="cyan")
            click.echo(generated.content)
            continue
        try:
            generated.write()
        except OSError as e:
            click.secho(f"❌ Cannot write {generated.path}: {e}", fg="red")
            sys.exit(1)
        click.secho(f"   ✓ {generated.path}", fg="green")
