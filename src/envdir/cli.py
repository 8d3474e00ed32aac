from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from envdir.config import APP_NAME, EXIT_CODE_UNSUCCESSFUL, version_string
from envdir.environment import snapshot_environment
from envdir.loader import LoaderError, build_environment
from envdir.runner import Invocation, RunnerError, run_command

INTERFACE_HELP = """
Each filename in DIRECTORY is the name of an environment variable.
The contents of the file is the value of the environment variable.
The last newline of each file is ignored.
If the file is empty (containing only 0 bytes or 1 newline),
that environment variable is unset.
Files whose names are not valid variable names are ignored.

envdir exits 111 if the directory's files can't be read,
a file contains the null character, or the command can't be run.
"""

app = typer.Typer(
    help="Run a command with environment variables specified by the files in a directory.",
    add_completion=False,
    rich_markup_mode=None,
)
console = Console(stderr=True, soft_wrap=True)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def _show_version(value: bool) -> None:
    if value:
        typer.echo(version_string())
        raise typer.Exit(code=0)


@app.command(
    epilog=INTERFACE_HELP,
    context_settings={"allow_interspersed_args": False},
)
def envdir(
    directory: Path = typer.Argument(
        ...,
        help="The directory of files representing environment variables.",
        show_default=False,
    ),
    command: str = typer.Argument(..., help="The command to run.", show_default=False),
    arguments: list[str] | None = typer.Argument(
        None,
        help="The arguments of the command to run.",
        show_default=False,
    ),
    ignore_environment: bool = typer.Option(
        False,
        "-i",
        "--ignore-environment",
        help="Start with an empty environment.",
    ),
    verbose: bool = typer.Option(
        False,
        "-v",
        "--verbose",
        help="Log which variables are set, unset and skipped.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version.",
    ),
) -> None:
    """Run a command with environment variables specified by the files in a directory."""
    configure_logging(verbose)
    try:
        base = snapshot_environment(ignore_environment)
        environment = build_environment(directory, base)
        code = run_command(Invocation(command, list(arguments or []), environment))
    except (LoaderError, RunnerError) as exc:
        console.print(f"[red]{APP_NAME}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=EXIT_CODE_UNSUCCESSFUL) from exc

    raise typer.Exit(code=code)


def main() -> None:
    app(prog_name=APP_NAME)


if __name__ == "__main__":
    main()
