"""Chart metadata models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from waypoint.utils.timestamps import normalize_timestamp


def _compact(d: dict[str, Any]) -> dict[str, Any]:
    """Drop empty values so dumped YAML only carries what the chart declares."""
    return {k: v for k, v in d.items() if v not in ("", None, [], {})}


def _require_mapping(d: Any, what: str) -> dict:
    if not isinstance(d, dict):
        raise ValueError(f"{what} must be a mapping, got {type(d).__name__}: {d!r}")
    return d


def _as_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{what}' must be a list, got {type(value).__name__}")
    return value


def _extras(d: dict, known: frozenset[str]) -> dict[str, Any]:
    """Keys the model does not name, kept so a load/dump cycle loses nothing."""
    return {k: v for k, v in d.items() if k not in known}


@dataclass
class Maintainer:
    name: str = ""
    email: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> Maintainer:
        d = _require_mapping(d, "maintainer")
        return cls(
            name=d.get("name", ""),
            email=d.get("email", ""),
            url=d.get("url", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "email": self.email, "url": self.url})


_DEPENDENCY_KEYS = frozenset({"name", "version", "repository", "condition", "alias"})


@dataclass
class ChartDependency:
    name: str = ""
    version: str = ""
    repository: str = ""
    condition: str = ""
    alias: str = ""
    # tags, import-values, enabled, ...
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> ChartDependency:
        d = _require_mapping(d, "dependency")
        return cls(
            name=d.get("name", ""),
            version=str(d.get("version", "")),
            repository=d.get("repository", ""),
            condition=d.get("condition", ""),
            alias=d.get("alias", ""),
            extra=_extras(d, _DEPENDENCY_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        data = _compact({
            "name": self.name,
            "version": self.version,
            "repository": self.repository,
            "condition": self.condition,
            "alias": self.alias,
        })
        data.update(self.extra)
        return data


_METADATA_KEYS = frozenset({
    "apiVersion", "name", "version", "appVersion", "description", "type", "home",
    "icon", "keywords", "sources", "maintainers", "dependencies", "annotations",
})


@dataclass
class ChartMetadata:
    name: str = ""
    version: str = ""
    app_version: str = ""
    description: str = ""
    api_version: str = ""
    chart_type: str = ""
    home: str = ""
    icon: str = ""
    keywords: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    maintainers: list[Maintainer] = field(default_factory=list)
    dependencies: list[ChartDependency] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    # kubeVersion, deprecated, engine, ...
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> ChartMetadata:
        if not d:
            return cls()
        d = _require_mapping(d, "chart metadata")
        return cls(
            name=d.get("name", ""),
            # YAML happily reads 1.0 as a float
            version=str(d.get("version", "")),
            app_version=str(d.get("appVersion", "")),
            description=d.get("description", ""),
            api_version=d.get("apiVersion", ""),
            chart_type=d.get("type", ""),
            home=d.get("home", ""),
            icon=d.get("icon", ""),
            keywords=list(_as_list(d.get("keywords"), "keywords")),
            sources=list(_as_list(d.get("sources"), "sources")),
            maintainers=[Maintainer.from_dict(m) for m in _as_list(d.get("maintainers"), "maintainers")],
            dependencies=[
                ChartDependency.from_dict(dep) for dep in _as_list(d.get("dependencies"), "dependencies")
            ],
            annotations=dict(_require_mapping(d.get("annotations") or {}, "annotations")),
            extra=_extras(d, _METADATA_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        data = _compact({
            "apiVersion": self.api_version,
            "name": self.name,
            "version": self.version,
            "appVersion": self.app_version,
            "description": self.description,
            "type": self.chart_type,
            "home": self.home,
            "icon": self.icon,
            "keywords": list(self.keywords),
            "sources": list(self.sources),
            "maintainers": [m.to_dict() for m in self.maintainers],
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "annotations": dict(self.annotations),
        })
        data.update(self.extra)
        return data


_INDEX_ONLY_KEYS = frozenset({"urls", "created", "digest"})


@dataclass
class ChartVersion:
    """One entry of a repository index: chart metadata plus where to fetch it."""

    metadata: ChartMetadata = field(default_factory=ChartMetadata)
    urls: list[str] = field(default_factory=list)
    created: str = ""
    digest: str = ""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.metadata.version

    @classmethod
    def from_dict(cls, d: dict) -> ChartVersion:
        d = _require_mapping(d, "index entry")
        return cls(
            metadata=ChartMetadata.from_dict(_extras(d, _INDEX_ONLY_KEYS)),
            urls=[str(u) for u in _as_list(d.get("urls"), "urls")],
            created=normalize_timestamp(d.get("created")),
            digest=d.get("digest", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.metadata.to_dict()
        data.update(_compact({
            "urls": list(self.urls),
            "created": self.created,
            "digest": self.digest,
        }))
        return data
