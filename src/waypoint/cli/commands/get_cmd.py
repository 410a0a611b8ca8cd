"""waypoint get - List all published versions of the app."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from waypoint.cli.options import ConfigOption, OutputOption
from waypoint.config.loader import load_project
from waypoint.config.settings import Settings
from waypoint.core.errors import WaypointError
from waypoint.core.index_sync import IndexSynchronizer
from waypoint.core.repo_resolver import RepositoryCatalog, get_all_repo_versions
from waypoint.output.formatters import output_versions

app = typer.Typer()


@app.callback(invoke_without_command=True)
def get(
    output: str = OutputOption,
    config: Optional[Path] = ConfigOption,
    refresh: bool = typer.Option(False, "--refresh", help="Refresh every repository index first"),
) -> None:
    """List every known version of the app, newest first, per repository."""
    try:
        project = load_project(config)
        settings = Settings()
        catalog = RepositoryCatalog(settings)
        if refresh:
            IndexSynchronizer(catalog).update_repos()
        versions = get_all_repo_versions(project.app, catalog.file, settings)
    except WaypointError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    output_versions(versions, output)
