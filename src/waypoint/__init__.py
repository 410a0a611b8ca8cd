"""Waypoint - Release container images and Helm charts in one step."""

__version__ = "0.1.0"
