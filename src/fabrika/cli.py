"""Fabrika CLI: resumable document-generation workflow."""

from pathlib import Path

import typer

from fabrika import __version__

from .commands import export, fresh, init, manual, reset, run, skip, status, steps
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fabrika {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="fabrika",
    help="Step-by-step product document workflow with resumable checkpoints",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    project: Path = typer.Option(
        Path("."),
        "--project",
        "-C",
        help="Project directory",
        file_okay=False,
    ),
) -> None:
    """Fabrika CLI - resumable document-generation workflow."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(
        OutputContext(console=console, json_mode=json_output, project_path=project.resolve())
    )


app.command()(init)
app.command()(steps)
app.command()(status)
app.command()(run)
app.command()(skip)
app.command()(reset)
app.command()(fresh)
app.command()(manual)
app.command()(export)


if __name__ == "__main__":
    app()
