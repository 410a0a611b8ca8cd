"""waypoint repo - Refresh cached chart repository indexes."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from waypoint.config.settings import Settings
from waypoint.core.errors import WaypointError
from waypoint.core.index_sync import IndexSynchronizer
from waypoint.core.repo_resolver import RepositoryCatalog
from waypoint.output.tables import repo_update_table

app = typer.Typer()
console = Console()


@app.command("update")
def update(
    name: Optional[str] = typer.Argument(None, help="Repository to refresh (default: all)"),
) -> None:
    """Download the latest index of one repository, or of all of them."""
    sync = IndexSynchronizer(RepositoryCatalog(Settings()))
    try:
        if name:
            path = sync.update_repo(name)
            if path is None:
                console.print(f"[dim]{name} is managed locally; nothing to refresh.[/dim]")
            else:
                console.print(f"[green]Refreshed {name}[/green] [dim]({path})[/dim]")
            return
        results = sync.update_repos()
    except WaypointError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    console.print(repo_update_table(results))
    failed = [r for r in results if not r.ok]
    if failed:
        console.print(f"\n[yellow]{len(failed)} of {len(results)} repositories could not be refreshed[/yellow]")
        raise typer.Exit(code=1)
