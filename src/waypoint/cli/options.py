"""Shared CLI options."""

from __future__ import annotations

import typer

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
ConfigOption = typer.Option(
    None, "--config", "-c", help="Project file (default: $WAYPOINT_CONFIG or ./waypoint.yaml)",
)
TargetOption = typer.Option("", "--target", "-t", help="The deployment to target in the config file")
