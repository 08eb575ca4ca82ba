"""qarun otp — print the current one-time password."""

from __future__ import annotations

from pathlib import Path

import typer

from qarun.core.config import load_config
from qarun.core.exceptions import QARunError
from qarun.core.otp import OneTimePassword


def otp_command(
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    verify: str | None = typer.Option(
        None, "--verify", help="Check a code instead of printing one."
    ),
) -> None:
    """Print (or verify) the TOTP code for the configured secret."""
    try:
        config = load_config(config_path=Path(config_path) if config_path else None)
        otp = OneTimePassword(config.otp_secret)
    except QARunError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    if verify is None:
        typer.echo(otp.now())
        return
    if otp.verify(verify):
        typer.echo(typer.style("valid", fg=typer.colors.GREEN))
    else:
        typer.echo(typer.style("invalid", fg=typer.colors.RED))
        raise typer.Exit(code=1)
