"""
xwalkify — CLI entrypoint.

Usage:
    xwalkify --help
    xwalkify migrate path/to/cordova-app --channel beta --arch arm
    xwalkify channels
    xwalkify history
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from xwalkify import __version__
from xwalkify.core.data.channels import (
    ALL_ARCHITECTURES,
    CHANNEL_VERSIONS,
    DEFAULT_CHANNEL,
    REQUIRED_CORDOVA_VERSIONS,
    SUPPORTED_ARCHITECTURES,
    known_channels,
)
from xwalkify.core.observability.logging_config import resolve_level, setup_logging

# Build output lines echoed after a successful rebuild
_TRACE_LINES = 20


@click.group()
@click.version_option(version=__version__, prog_name="xwalkify")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to xwalkify.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """xwalkify — swap a Cordova Android project's runtime for Crosswalk."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path

    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("XWALKIFY_LOG_LEVEL")),
        log_file=os.environ.get("XWALKIFY_LOG_FILE"),
        log_file_level=os.environ.get("XWALKIFY_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.argument(
    "project_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--channel",
    "-c",
    type=click.Choice(known_channels()),
    default=None,
    help=f"Release channel (default: {DEFAULT_CHANNEL}).",
)
@click.option("--xwalk-version", default=None, help="Crosswalk version (default: channel's).")
@click.option("--target", "-t", default=None, help="Android target id, e.g. android-19.")
@click.option(
    "--arch",
    "-a",
    type=click.Choice([*SUPPORTED_ARCHITECTURES, ALL_ARCHITECTURES]),
    default=None,
    help="Architecture to fetch (default: both).",
)
@click.option("--preserve", "-p", is_flag=True, help="Reuse a previously downloaded bundle.")
@click.option("--force", "-f", is_flag=True, help="Continue despite a Cordova version mismatch.")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Bundle cache directory (default: ~/.cache/xwalkify).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def migrate(
    ctx: click.Context,
    project_dir: Path,
    channel: str | None,
    xwalk_version: str | None,
    target: str | None,
    arch: str | None,
    preserve: bool,
    force: bool,
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Replace CordovaLib with Crosswalk and rebuild it.

    Examples:

        xwalkify migrate

        xwalkify migrate ./app --channel beta --arch arm

        xwalkify migrate --preserve --target android-21
    """
    from xwalkify.core.use_cases.migrate import run_migration

    quiet = ctx.obj.get("quiet", False)

    def _report(line: str) -> None:
        click.echo(f"   {line}")

    if not as_json and not quiet:
        click.secho(f"\n⚡ xwalkify {__version__} — {project_dir.resolve()}", fg="cyan", bold=True)

    result = run_migration(
        project_dir,
        config_path=ctx.obj.get("config_path"),
        channel=channel,
        xwalk_version=xwalk_version,
        target=target,
        arch=arch,
        preserve_existing=preserve,
        force_override=force,
        cache_dir=cache_dir,
        reporter=None if as_json or quiet else _report,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.ok:
        if result.build_output and not quiet:
            click.echo()
            for line in result.build_output.splitlines()[-_TRACE_LINES:]:
                click.echo(f"     │ {line}")
        click.echo()
        click.secho(f"✅ {result.message}", fg="green", bold=True)
        click.echo()
        return

    click.echo()
    click.secho(f"❌ [{result.stage.value}] {result.message}", fg="red", bold=True)
    if result.error is not None and result.error.guidance:
        click.echo(f"   {result.error.guidance}")
    click.echo()
    sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def channels(as_json: bool) -> None:
    """Show release channels and the Cordova version each one needs."""
    rows = [
        {
            "channel": name,
            "xwalk_version": CHANNEL_VERSIONS[name],
            "cordova_android": REQUIRED_CORDOVA_VERSIONS[name],
        }
        for name in known_channels()
    ]

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.secho("📦 Channels:", fg="cyan", bold=True)
    for row in rows:
        default = " (default)" if row["channel"] == DEFAULT_CHANNEL else ""
        click.echo(
            f"   {row['channel']:<8} crosswalk {row['xwalk_version']:<14} "
            f"needs cordova-android {row['cordova_android']}{default}"
        )
    click.echo()


@cli.command()
@click.argument(
    "project_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
)
@click.option("--limit", "-n", default=10, type=int, help="Number of runs to show.")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Bundle cache directory holding the ledger.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(
    ctx: click.Context,
    project_dir: Path,
    limit: int,
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Show recent migration runs.

    Reads the ledger in the same cache root a migrate of PROJECT_DIR
    would use, so a cache_dir set in xwalkify.yml is honoured.
    """
    from xwalkify.core.config.loader import find_config_file, load_settings, resolve_cache_root
    from xwalkify.core.errors import ConfigurationError
    from xwalkify.core.persistence.audit import AuditWriter

    try:
        settings = load_settings(ctx.obj.get("config_path") or find_config_file(project_dir))
    except ConfigurationError as e:
        click.secho(f"❌ {e.message}", fg="red", bold=True)
        sys.exit(1)

    ledger = AuditWriter(cache_root=resolve_cache_root(project_dir, settings, cache_dir))
    entries = ledger.read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho(f"No runs recorded in {ledger.path}", fg="yellow")
        return

    for entry in entries:
        color = "green" if entry.status == "ok" else "red"
        click.secho(f"   {entry.status:<6}", fg=color, nl=False)
        click.echo(
            f" {entry.timestamp}  {entry.channel} {entry.artifact_version}"
            f"  [{entry.stage}]  {entry.project_root}"
        )
        for err in entry.errors:
            click.echo(f"          │ {err}")
    click.echo()


if __name__ == "__main__":
    cli()
