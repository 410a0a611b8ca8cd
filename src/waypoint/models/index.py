"""Chart repository index model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from waypoint.models.chart import ChartVersion
from waypoint.utils.timestamps import EPOCH, normalize_timestamp, timestamp_sort_key
from waypoint.utils.version_compare import version_sort_key

API_VERSION = "v1"


@dataclass
class IndexFile:
    """Mapping of chart name to the versions a repository serves.

    Serialisation is deterministic: keys are dumped sorted and the
    ``generated`` stamp is derived from the entries, never from the clock.
    """

    api_version: str = API_VERSION
    entries: dict[str, list[ChartVersion]] = field(default_factory=dict)
    generated: str = EPOCH

    @classmethod
    def from_dict(cls, d: Any) -> IndexFile:
        if not isinstance(d, dict):
            raise ValueError("index is not a mapping")
        raw_entries = d.get("entries") or {}
        if not isinstance(raw_entries, dict):
            raise ValueError("index 'entries' is not a mapping")
        entries: dict[str, list[ChartVersion]] = {}
        for name, versions in raw_entries.items():
            if not isinstance(versions, list):
                raise ValueError(f"index entry '{name}' is not a list")
            entries[str(name)] = [ChartVersion.from_dict(v) for v in versions]
        return cls(
            api_version=d.get("apiVersion") or API_VERSION,
            entries=entries,
            generated=normalize_timestamp(d.get("generated")) or EPOCH,
        )

    @classmethod
    def from_yaml(cls, text: str) -> IndexFile:
        return cls.from_dict(yaml.safe_load(text))

    def has(self, name: str, version: str) -> bool:
        return any(cv.version == version for cv in self.entries.get(name, []))

    def add(self, chart_version: ChartVersion) -> None:
        self.entries.setdefault(chart_version.name, []).append(chart_version)

    def versions(self, name: str) -> list[str]:
        return [cv.version for cv in self.entries.get(name, [])]

    def merge(self, other: IndexFile) -> None:
        """Add every version of ``other`` not already present here.

        Entries already in ``self`` win when both sides carry the same
        name/version pair.
        """
        for name, versions in other.entries.items():
            for cv in versions:
                if not self.has(name, cv.version):
                    self.entries.setdefault(name, []).append(cv)

    def sort_entries(self) -> None:
        """Sort each chart's versions newest first."""
        for versions in self.entries.values():
            versions.sort(key=lambda cv: version_sort_key(cv.version), reverse=True)

    def refresh_generated(self) -> None:
        stamps = [cv.created for versions in self.entries.values() for cv in versions if cv.created]
        self.generated = max(stamps, key=timestamp_sort_key) if stamps else EPOCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "entries": {
                name: [cv.to_dict() for cv in versions]
                for name, versions in self.entries.items()
            },
            "generated": self.generated,
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)
