"""Semver ordering utilities."""

from __future__ import annotations

from typing import Any

from packaging.version import InvalidVersion, Version


def parse_version(v: str) -> Version | None:
    """Parse a version string, returning None on failure."""
    try:
        return Version(v)
    except InvalidVersion:
        # Try stripping leading 'v'
        if v.startswith("v"):
            try:
                return Version(v[1:])
            except InvalidVersion:
                pass
    return None


def version_sort_key(v: str) -> tuple[int, Any]:
    """Sort key placing parseable versions above unparseable ones.

    Sorting with ``reverse=True`` yields newest first, with any
    unparseable strings trailing in reverse lexical order.
    """
    parsed = parse_version(v)
    if parsed is None:
        return (0, v)
    return (1, parsed)


def sort_versions(versions: list[str]) -> list[str]:
    """Return ``versions`` newest first."""
    return sorted(versions, key=version_sort_key, reverse=True)
