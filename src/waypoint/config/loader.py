"""Load ``waypoint.yaml`` and resolve a release target."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from waypoint.core.errors import ConfigurationError
from waypoint.models.release import ProjectConfig, ReleaseConfig, TargetConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "waypoint.yaml"


def default_config_path() -> Path:
    return Path(os.environ.get("WAYPOINT_CONFIG", "") or DEFAULT_CONFIG_NAME)


def _resolve_path(base: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def load_project(path: Path | None = None) -> ProjectConfig:
    """Read a project file. Relative paths in it are taken from its directory."""
    path = path or default_config_path()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"config file not found: {path}") from None
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"could not read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must be a mapping")
    app = data.get("app")
    if not app:
        raise ConfigurationError(f"config file {path} does not name an 'app'")

    base = path.resolve().parent
    chart = data.get("chart") or {}
    image = data.get("image") or {}
    targets_raw = data.get("targets") or {}
    if not isinstance(targets_raw, dict):
        raise ConfigurationError("'targets' must be a mapping of target name to settings")

    targets = {
        name: TargetConfig.from_dict(name, raw or {})
        for name, raw in targets_raw.items()
    }
    logger.debug("Loaded %s with targets: %s", path, ", ".join(targets) or "-")

    return ProjectConfig(
        app=app,
        chart_dir=_resolve_path(base, chart.get("path", f"charts/{app}")),
        build_context=_resolve_path(base, image.get("context", ".")),
        image_repository=image.get("repository", ""),
        credential_helper=image.get("credential_helper", ""),
        chart_output_dir=_resolve_path(base, chart.get("output_dir", ".")),
        save_local=bool(chart.get("save_local", False)),
        prune_image=bool(image.get("prune", False)),
        targets=targets,
    )


def resolve_release(project: ProjectConfig, target: str) -> ReleaseConfig:
    """Merge project defaults with one target's overrides."""
    if not target:
        raise ConfigurationError("a --target is required")
    t = project.targets.get(target)
    if t is None:
        known = ", ".join(sorted(project.targets)) or "none"
        raise ConfigurationError(f"unknown target '{target}' (known: {known})")
    if not t.chart_repo:
        raise ConfigurationError(f"target '{target}' does not set 'chart_repo'")

    image_repository = t.image_repository or project.image_repository
    if not image_repository:
        raise ConfigurationError(f"no image repository configured for target '{target}'")
    if t.deploy and not t.namespace:
        raise ConfigurationError(f"target '{target}' deploys but sets no 'namespace'")

    return ReleaseConfig(
        app=project.app,
        target=target,
        chart_dir=project.chart_dir,
        build_context=project.build_context,
        image_repository=image_repository,
        chart_repo=t.chart_repo,
        credential_helper=t.credential_helper or project.credential_helper,
        chart_output_dir=project.chart_output_dir,
        save_local=project.save_local,
        prune_image=project.prune_image,
        deploy=t.deploy,
        namespace=t.namespace,
        release_name=t.release_name,
    )
