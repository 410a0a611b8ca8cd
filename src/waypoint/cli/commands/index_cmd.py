"""waypoint index <dir> - Generate an index file for a directory of charts."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from waypoint.config.settings import Settings
from waypoint.core.errors import WaypointError
from waypoint.core.index_sync import IndexSynchronizer
from waypoint.core.repo_resolver import RepositoryCatalog

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def index(
    directory: Path = typer.Argument(..., help="Directory holding packaged charts"),
    url: str = typer.Option("", "--url", help="Base URL the charts are served from"),
    merge: Optional[Path] = typer.Option(None, "--merge", help="Merge with this existing index file"),
) -> None:
    """Write <directory>/index.yaml, optionally merged with an existing index."""
    sync = IndexSynchronizer(RepositoryCatalog(Settings()))
    try:
        out = sync.update_index(directory, base_url=url, merge_to=merge)
    except WaypointError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    console.print(f"[green]Wrote {out}[/green]")
