"""CLI entry point for browsing stored profiles."""

from __future__ import annotations

import click

from .core.config import load_settings
from .core.errors import CallTreeError
from .observability.logger import setup_logging
from .profiler.storage import FileReportStorage


def _storage(config: str | None, directory: str | None) -> FileReportStorage:
    try:
        settings = load_settings(config)
    except CallTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    obs = settings.observability
    setup_logging(obs.log_level, obs.log_format.value)
    cfg = settings.storage
    return FileReportStorage(
        directory or cfg.directory, prefix=cfg.prefix, suffix=cfg.suffix,
    )


@click.group()
def main() -> None:
    """Call-tree profiler."""


@main.command("list")
@click.option("--config", default=None, help="Config file path")
@click.option("--dir", "directory", default=None, help="Profile directory override")
def list_profiles(config: str | None, directory: str | None) -> None:
    """List stored profiles, newest first."""
    storage = _storage(config, directory)
    keys = storage.keys()
    if not keys:
        click.echo(f"No profiles in {storage.directory}", err=True)
        return
    for key in keys:
        click.echo(key)


@main.command()
@click.argument("key")
@click.option("--config", default=None, help="Config file path")
@click.option("--dir", "directory", default=None, help="Profile directory override")
def show(key: str, config: str | None, directory: str | None) -> None:
    """Print a stored profile."""
    storage = _storage(config, directory)
    try:
        click.echo(storage.load(key))
    except CallTreeError as exc:
        raise click.ClickException(str(exc)) from exc


if __name__ == "__main__":
    main()
