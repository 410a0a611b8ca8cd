"""Semantic version used for a release."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from waypoint.core.errors import ConfigurationError
from waypoint.models import ReleaseType

_TRIPLE_RE = re.compile(r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, order=True)
class Version:
    major: int = 0
    minor: int = 0
    patch: int = 0
    rebuild: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, value: str) -> Version | None:
        """Parse ``1.2.3`` or ``v1.2.3``, returning None for anything else."""
        m = _TRIPLE_RE.match(value.strip())
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    def bump(self, release_type: ReleaseType) -> Version:
        if release_type == ReleaseType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if release_type == ReleaseType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        if release_type == ReleaseType.PATCH:
            return Version(self.major, self.minor, self.patch + 1)
        return Version(self.major, self.minor, self.patch, rebuild=True)


def select_release_type(
    major: bool = False,
    minor: bool = False,
    patch: bool = False,
    rebuild: bool = False,
) -> ReleaseType:
    """Return the single selected bump strategy.

    Zero or several selections are rejected, never defaulted.
    """
    flags = {
        ReleaseType.MAJOR: major,
        ReleaseType.MINOR: minor,
        ReleaseType.PATCH: patch,
        ReleaseType.REBUILD: rebuild,
    }
    selected = [t for t, on in flags.items() if on]
    if len(selected) != 1:
        names = ", ".join(f"--{t.value}" for t in flags)
        raise ConfigurationError(f"exactly one of {names} must be set (got {len(selected)})")
    return selected[0]


def latest_version(candidates: list[str]) -> Version | None:
    """Return the highest plain ``major.minor.patch`` among ``candidates``."""
    parsed = [v for v in (Version.parse(c) for c in candidates) if v is not None]
    return max(parsed) if parsed else None
