"""Release configuration and artifact references."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from waypoint.models import PipelineState, StepResult
from waypoint.models.version import Version


@dataclass(frozen=True)
class TargetConfig:
    name: str
    chart_repo: str
    namespace: str = ""
    release_name: str = ""
    deploy: bool = False
    image_repository: str = ""
    credential_helper: str = ""

    @classmethod
    def from_dict(cls, name: str, d: dict) -> TargetConfig:
        image = d.get("image") or {}
        return cls(
            name=name,
            chart_repo=d.get("chart_repo", ""),
            namespace=d.get("namespace", ""),
            release_name=d.get("release", ""),
            deploy=bool(d.get("deploy", False)),
            image_repository=image.get("repository", ""),
            credential_helper=image.get("credential_helper", ""),
        )


@dataclass(frozen=True)
class ReleaseConfig:
    """Fully resolved, read-only configuration for one release of one target."""

    app: str
    target: str
    chart_dir: Path
    build_context: Path
    image_repository: str
    chart_repo: str
    credential_helper: str = ""
    chart_output_dir: Path = Path(".")
    save_local: bool = False
    prune_image: bool = False
    deploy: bool = False
    namespace: str = ""
    release_name: str = ""

    @property
    def helm_release(self) -> str:
        return self.release_name or f"{self.app}-{self.target}"


@dataclass
class ProjectConfig:
    """Contents of ``waypoint.yaml`` before a target is chosen."""

    app: str
    chart_dir: Path
    build_context: Path
    image_repository: str = ""
    credential_helper: str = ""
    chart_output_dir: Path = Path(".")
    save_local: bool = False
    prune_image: bool = False
    targets: dict[str, TargetConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class ImageRef:
    """A tagged image name, derived from the app name and release version."""

    repository: str
    tag: str

    @classmethod
    def for_release(cls, registry_repo: str, app: str, version: Version) -> ImageRef:
        return cls(repository=f"{registry_repo.rstrip('/')}/{app}", tag=str(version))

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"


@dataclass
class ReleaseReport:
    app: str
    target: str
    state: PipelineState
    version: Version | None = None
    image: ImageRef | None = None
    chart_archive: Path | None = None
    steps: list[StepResult] = field(default_factory=list)
    failed_step: str = ""
    error: str = ""

    @property
    def duration(self) -> float:
        return sum(s.duration for s in self.steps)
