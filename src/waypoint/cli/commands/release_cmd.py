"""waypoint release - Run the release pipeline for one target."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from waypoint.cli.options import ConfigOption, TargetOption
from waypoint.config.loader import load_project, resolve_release
from waypoint.config.settings import Settings
from waypoint.core.errors import ConfigurationError, ReleaseFailed
from waypoint.core.pipeline import Release, ReleaseServices, ReleaseStep, steps_for
from waypoint.models.version import select_release_type
from waypoint.output.tables import release_summary_panel

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def release(
    target: str = TargetOption,
    major: bool = typer.Option(False, "--major", help="Bump the major version up by one"),
    minor: bool = typer.Option(False, "--minor", help="Bump the minor version up by one"),
    patch: bool = typer.Option(False, "--patch", help="Bump the patch version up by one"),
    rebuild: bool = typer.Option(False, "--rebuild", help="Reuse the latest published version"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Bump the version, build and push the image, then package and publish the chart."""
    try:
        release_type = select_release_type(major=major, minor=minor, patch=patch, rebuild=rebuild)
        release_config = resolve_release(load_project(config), target)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    services = ReleaseServices.from_settings(Settings())
    failure: ReleaseFailed | None = None

    with console.status("[bold cyan]Starting release…") as status:
        def on_step(i: int, total: int, step: ReleaseStep) -> None:
            status.update(f"[bold cyan]{step.description}… [dim]({i}/{total})[/dim]")

        run = Release(release_config, release_type, services, on_step=on_step)
        try:
            run.do(steps_for(release_config))
        except ReleaseFailed as e:
            failure = e

    console.print(release_summary_panel(run.report()))
    if failure is not None:
        typer.echo(f"Release failed: {failure}", err=True)
        raise typer.Exit(code=1)
