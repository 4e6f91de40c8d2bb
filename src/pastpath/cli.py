"""Command line interface for pastpath."""

from __future__ import annotations

import asyncio
import json
import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from pastpath.config import (
    DEFAULT_CONFIG_PATH,
    PastPathConfig,
    detect_browsers,
    generate_config_toml,
    load_config,
)
from pastpath.errors import PastPathError
from pastpath.models import SearchResult, SyncReport
from pastpath.pipeline import Pipeline
from pastpath.scheduler import SyncScheduler
from pastpath.timestamps import epoch_to_datetime


def _build_version() -> str:
    try:
        return version("pastpath")
    except PackageNotFoundError:
        return "unknown"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(ctx: click.Context) -> PastPathConfig:
    """Load config, with helpful error message if missing."""
    config_path: Path = ctx.obj["config_path"]
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from None
    except PastPathError as e:
        raise click.ClickException(str(e)) from None
    _configure_logging("DEBUG" if ctx.obj["verbose"] else config.log_level)
    return config


def _format_time(seconds: int) -> str:
    if seconds <= 0:
        return "never"
    return epoch_to_datetime(seconds).astimezone().strftime("%Y-%m-%d %H:%M")


def _echo_report(report: SyncReport) -> None:
    for name, count in report.imported.items():
        click.echo(f"  [{name}] {count} entries")
    for name in report.skipped:
        click.echo(click.style(f"  [{name}] skipped (unsupported browser type)", dim=True))
    for name, error in report.failed.items():
        click.echo(click.style(f"  [{name}] failed: {error}", fg="red"))
    click.echo(f"  Search cache: {report.cache_entries} pages")


def _echo_results(results: list[SearchResult]) -> None:
    if not results:
        click.echo(click.style("  (no matches)", dim=True))
        return
    for result in results:
        title = result.title or result.url
        meta = f"{_format_time(result.last_visit_time)} · {result.visit_count} visits"
        click.echo(click.style(f"  {title}", bold=True))
        click.echo(f"    {result.url}")
        click.echo(click.style(f"    {meta}", dim=True))


@click.group()
@click.version_option(package_name="pastpath")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """PastPath: one searchable history for all your browsers.

    Imports Chrome- and Firefox-family history into a local database,
    merges http/https duplicates, and searches it by keyword.

    Run 'pastpath init' to set up your configuration.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path.expanduser()
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--no-detect", is_flag=True, help="Don't look for installed browsers")
@click.pass_context
def init(ctx: click.Context, no_detect: bool) -> None:
    """Create a default configuration file."""
    config_path: Path = ctx.obj["config_path"]
    if config_path.exists() and not click.confirm(
        f"Config already exists at {config_path}. Overwrite?"
    ):
        return

    config = PastPathConfig()
    if not no_detect:
        config.browsers = detect_browsers()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_config_toml(config))

    click.echo(f"✓ Config created at: {config_path}")
    if config.browsers:
        click.echo(f"  Found {len(config.browsers)} browser profile(s):")
        for browser in config.browsers:
            click.echo(f"    {browser.name}: {browser.history_path}")
    else:
        click.echo("  No browsers detected. Add [[browsers]] tables by hand.")


@cli.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Delete the history database and start fresh."""
    config = _load_config(ctx)
    db_path = config.db_path
    if not db_path.exists():
        click.echo(f"No database at {db_path}")
        return
    if click.confirm(f"Delete {db_path}? This removes all imported history."):
        for path in (db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")):
            path.unlink(missing_ok=True)
        click.echo("Database deleted. Run 'pastpath sync' to start fresh.")


@cli.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Import history from every configured browser once."""
    config = _load_config(ctx)
    pipeline = Pipeline(config)
    try:
        click.echo("  Syncing browser history...")
        try:
            report = pipeline.run_once()
        except PastPathError as e:
            if pipeline.last_report is not None:
                _echo_report(pipeline.last_report)
            raise click.ClickException(str(e)) from None
        _echo_report(report)
    finally:
        pipeline.close()


@cli.command()
@click.option("--interval", type=int, default=None, help="Seconds between syncs")
@click.pass_context
def watch(ctx: click.Context, interval: int | None) -> None:
    """Sync now and then periodically until interrupted."""
    config = _load_config(ctx)
    seconds = interval or config.sync.interval_seconds
    pipeline = Pipeline(config)
    scheduler = SyncScheduler(pipeline, seconds)
    click.echo(f"  Syncing every {seconds}s (Ctrl-C to stop)")
    try:
        asyncio.run(scheduler.run())
    except KeyboardInterrupt:
        click.echo("  Stopped")
    finally:
        pipeline.close()


@cli.command()
@click.argument("phrase", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def search(ctx: click.Context, phrase: tuple[str, ...], as_json: bool) -> None:
    """Search imported history. Every word must match the title or URL."""
    config = _load_config(ctx)
    pipeline = Pipeline(config)
    try:
        try:
            results = pipeline.query_engine().search(" ".join(phrase))
        except PastPathError as e:
            raise click.ClickException(str(e)) from None
        if as_json:
            click.echo(json.dumps([r.to_dict() for r in results]))
        else:
            _echo_results(results)
    finally:
        pipeline.close()


@cli.command()
@click.argument("phrase", nargs=-1)
@click.pass_context
def suggest(ctx: click.Context, phrase: tuple[str, ...]) -> None:
    """Print autocomplete suggestions as a JSON [phrase, suggestions] pair."""
    config = _load_config(ctx)
    pipeline = Pipeline(config)
    try:
        try:
            echoed, suggestions = pipeline.query_engine().suggest(" ".join(phrase))
        except PastPathError as e:
            raise click.ClickException(str(e)) from None
        click.echo(json.dumps([echoed, suggestions]))
    finally:
        pipeline.close()


@cli.command()
@click.argument("text")
@click.pass_context
def resolve(ctx: click.Context, text: str) -> None:
    """Print the URL a suggestion points at (or a web search for it)."""
    config = _load_config(ctx)
    pipeline = Pipeline(config)
    try:
        click.echo(pipeline.query_engine().resolve_suggestion(text))
    finally:
        pipeline.close()


@cli.command("last-sync")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@click.pass_context
def last_sync(ctx: click.Context, as_json: bool) -> None:
    """Show when history was last imported."""
    config = _load_config(ctx)
    pipeline = Pipeline(config)
    try:
        try:
            timestamp = pipeline.store.last_sync_timestamp()
        except PastPathError as e:
            raise click.ClickException(str(e)) from None
    finally:
        pipeline.close()

    if as_json:
        click.echo(json.dumps({"last_timestamp": timestamp, "build_version": _build_version()}))
    elif timestamp is None:
        click.echo("Never synced. Run 'pastpath sync'.")
    else:
        click.echo(f"Last synced: {_format_time(timestamp)}")
