"""qarun suites — list registered suites and the configured queue."""

from __future__ import annotations

from pathlib import Path

import typer

from qarun.core.config import load_config
from qarun.core.exceptions import QARunError
from qarun.core.suites import load_registry


def suites_command(
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    module: str | None = typer.Option(
        None, "--suites-module", "-m", help="Module defining `registry`."
    ),
) -> None:
    """List registered suites; flag queued names that are not registered."""
    try:
        config = load_config(config_path=Path(config_path) if config_path else None)
        registry = load_registry(module or config.suites_module)
    except QARunError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    for name in registry.names():
        suite = registry.get(name)
        queued = "queued" if name in config.suites else ""
        typer.echo(f"  {name} ({len(suite.scenarios)} scenarios) {queued}".rstrip())

    missing = [name for name in config.suites if name not in registry]
    if missing:
        typer.echo(
            typer.style(f"Unknown suites in queue: {', '.join(missing)}", fg=typer.colors.RED),
            err=True,
        )
        raise typer.Exit(code=1)
