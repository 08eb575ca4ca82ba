"""qarun CLI entry point."""

import logging

import typer

app = typer.Typer(
    name="qarun",
    help="qarun — resumable browser acceptance-test runner",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from qarun import __version__

        typer.echo(f"qarun {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """qarun — resumable browser acceptance-test runner."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# -- Register commands --------------------------------------------------------

from qarun.cli.commands.otp_cmd import otp_command  # noqa: E402
from qarun.cli.commands.run_cmd import run_command  # noqa: E402
from qarun.cli.commands.suites_cmd import suites_command  # noqa: E402

app.command(name="run")(run_command)
app.command(name="otp")(otp_command)
app.command(name="suites")(suites_command)
