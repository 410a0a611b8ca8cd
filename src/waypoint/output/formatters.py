"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console

from waypoint.models.repo import AppVersions

console = Console()


def _versions_to_dict(versions: AppVersions) -> dict[str, Any]:
    return {
        "app": versions.app,
        "repositories": {repo: list(vs) for repo, vs in sorted(versions.by_repo.items())},
    }


def output_versions(versions: AppVersions, fmt: str) -> None:
    if fmt == "json":
        console.print_json(json.dumps(_versions_to_dict(versions), indent=2))
    elif fmt == "yaml":
        console.print(yaml.dump(_versions_to_dict(versions), default_flow_style=False))
    else:
        from waypoint.output.tables import versions_table
        if not versions.by_repo:
            console.print(f"[dim]No published versions of {versions.app} found.[/dim]")
            return
        console.print(versions_table(versions))
