"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from waypoint.models.release import ReleaseReport
from waypoint.models.repo import AppVersions, RepoUpdateResult
from waypoint.output.themes import styled_state, styled_step_status


def versions_table(versions: AppVersions) -> Table:
    table = Table(title=f"Versions of {versions.app}", expand=False)
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Version", style="magenta")
    table.add_column("Latest", justify="center")

    for repo_name, repo_versions in sorted(versions.by_repo.items()):
        for i, v in enumerate(repo_versions):
            table.add_row(repo_name if i == 0 else "", v, "[green]*[/green]" if i == 0 else "")
    return table


def repo_update_table(results: list[RepoUpdateResult]) -> Table:
    table = Table(title="Repository Refresh", expand=False)
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Result", no_wrap=True)
    table.add_column("Detail", style="dim", max_width=60)

    for r in results:
        if r.error is not None:
            table.add_row(r.name, "[red bold]failed[/red bold]", str(r.error))
        elif r.skipped:
            table.add_row(r.name, "[dim]skipped[/dim]", "managed locally")
        else:
            table.add_row(r.name, "[green]updated[/green]", "")
    return table


def release_summary_panel(report: ReleaseReport) -> Panel:
    steps = Table(expand=False, box=None, padding=(0, 2))
    steps.add_column("Step", style="bold")
    steps.add_column("Status", no_wrap=True)
    steps.add_column("Time", justify="right", style="dim")
    steps.add_column("Detail", max_width=60)
    for s in report.steps:
        steps.add_row(s.name, styled_step_status(s.status), f"{s.duration:.1f}s", s.detail)

    info = Table(show_header=False, box=None, padding=(0, 2))
    info.add_column("Key", style="bold cyan", no_wrap=True)
    info.add_column("Value")
    info.add_row("App", report.app)
    info.add_row("Target", report.target)
    info.add_row("Version", str(report.version) if report.version else "-")
    info.add_row("Image", str(report.image) if report.image else "-")
    info.add_row("Chart", str(report.chart_archive) if report.chart_archive else "-")
    info.add_row("Result", styled_state(report.state))

    grid = Table.grid(padding=(1, 0))
    grid.add_row(info)
    grid.add_row(steps)
    border = "green" if not report.failed_step else "red"
    return Panel(grid, title=f"[bold]Release: {report.app}[/bold]", border_style=border)
