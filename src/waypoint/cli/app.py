"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from waypoint import __version__

app = typer.Typer(
    name="waypoint",
    help="Waypoint - Release container images and Helm charts in one step.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"waypoint version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step in detail"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit",
    ),
) -> None:
    """Waypoint - Release container images and Helm charts in one step."""
    _configure_logging(verbose)


def _register_commands() -> None:
    from waypoint.cli.commands.get_cmd import app as get_app
    from waypoint.cli.commands.index_cmd import app as index_app
    from waypoint.cli.commands.release_cmd import app as release_app
    from waypoint.cli.commands.repo_cmd import app as repo_app

    app.add_typer(get_app, name="get", help="List all published versions of the app")
    app.add_typer(release_app, name="release", help="Build, push, package and publish a release")
    app.add_typer(repo_app, name="repo", help="Manage the local chart repository cache")
    app.add_typer(index_app, name="index", help="Generate an index file for a directory of charts")


_register_commands()


def main() -> None:
    app()
