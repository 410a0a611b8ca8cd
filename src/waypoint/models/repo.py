"""Chart repository models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

LOCAL_REPO_NAME = "local"


@dataclass(frozen=True)
class RepositoryEntry:
    name: str
    url: str
    cache: Path | None = None

    @classmethod
    def from_dict(cls, d: dict) -> RepositoryEntry:
        cache = d.get("cache") or ""
        return cls(
            name=d["name"],
            url=str(d["url"]).rstrip("/"),
            cache=Path(cache).expanduser() if cache else None,
        )

    def cache_path(self, cache_dir: Path) -> Path:
        """Where this repository's downloaded index lives."""
        if self.cache is None:
            return cache_dir / f"{self.name}-index.yaml"
        if self.cache.is_absolute():
            return self.cache
        return cache_dir / self.cache


@dataclass(frozen=True)
class RepositoryFile:
    """Ordered, read-only list of configured repositories."""

    repositories: tuple[RepositoryEntry, ...] = ()

    @classmethod
    def from_dict(cls, d: dict | None) -> RepositoryFile:
        if not d:
            return cls()
        if not isinstance(d, dict):
            raise ValueError(f"expected a mapping, got {type(d).__name__}")
        if not d.get("repositories"):
            return cls()
        if not isinstance(d["repositories"], list):
            raise ValueError("'repositories' must be a list")
        entries: list[RepositoryEntry] = []
        seen: set[str] = set()
        for raw in d["repositories"]:
            if not isinstance(raw, dict) or "name" not in raw or "url" not in raw:
                raise ValueError(f"repository entry needs 'name' and 'url': {raw!r}")
            entry = RepositoryEntry.from_dict(raw)
            if entry.name in seen:
                raise ValueError(f"duplicate repository name '{entry.name}'")
            seen.add(entry.name)
            entries.append(entry)
        return cls(repositories=tuple(entries))

    def __len__(self) -> int:
        return len(self.repositories)

    def get(self, name: str) -> RepositoryEntry | None:
        for entry in self.repositories:
            if entry.name == name:
                return entry
        return None

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.repositories]


@dataclass
class RepoUpdateResult:
    name: str
    error: Exception | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AppVersions:
    """Every published version of one app, per repository, newest first."""

    app: str
    by_repo: dict[str, list[str]] = field(default_factory=dict)
