"""Package a chart directory into a versioned archive."""

from __future__ import annotations

import fnmatch
import io
import logging
import os
import tarfile
from pathlib import Path

import yaml

from waypoint.config.settings import Settings
from waypoint.core.errors import ChartLoadError, ChartNameMismatch, UnsatisfiedDependency
from waypoint.models.chart import ChartDependency, ChartMetadata, ChartVersion
from waypoint.models.index import IndexFile
from waypoint.utils.files import atomic_write_bytes, atomic_write_text, sha256_file
from waypoint.utils.timestamps import from_mtime

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
REQUIREMENTS_FILE = "requirements.yaml"
IGNORE_FILE = ".helmignore"


def load_chart_metadata(src: Path) -> ChartMetadata:
    chart_file = src / CHART_FILE
    try:
        data = yaml.safe_load(chart_file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ChartLoadError(f"{src} is not a chart: {CHART_FILE} not found") from None
    except (OSError, yaml.YAMLError) as e:
        raise ChartLoadError(f"could not read {chart_file}: {e}") from e
    if not isinstance(data, dict):
        raise ChartLoadError(f"{chart_file} must be a mapping")
    try:
        meta = ChartMetadata.from_dict(data)
    except ValueError as e:
        raise ChartLoadError(f"invalid {chart_file}: {e}") from e
    if not meta.name:
        raise ChartLoadError(f"{chart_file} does not declare a name")
    return meta


def load_requirements(src: Path, meta: ChartMetadata) -> list[ChartDependency]:
    """Declared dependencies. A chart without any declares none."""
    req_file = src / REQUIREMENTS_FILE
    if req_file.is_file():
        try:
            data = yaml.safe_load(req_file.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ChartLoadError(f"could not read {req_file}: {e}") from e
        if not isinstance(data, dict):
            raise ChartLoadError(f"{req_file} must be a mapping")
        try:
            return [ChartDependency.from_dict(d) for d in data.get("dependencies") or []]
        except ValueError as e:
            raise ChartLoadError(f"invalid {req_file}: {e}") from e
    return list(meta.dependencies)


def _subchart_names(src: Path) -> set[str]:
    """Names of the sub-charts vendored under ``charts/``."""
    charts_dir = src / "charts"
    names: set[str] = set()
    if not charts_dir.is_dir():
        return names
    for child in charts_dir.iterdir():
        if child.is_dir() and (child / CHART_FILE).is_file():
            try:
                names.add(load_chart_metadata(child).name)
            except ChartLoadError:
                logger.debug("Ignoring unreadable sub-chart %s", child, exc_info=True)
        elif child.is_file() and child.name.endswith(".tgz"):
            meta = read_archive_metadata(child)
            if meta is not None:
                names.add(meta.name)
    return names


def check_dependencies(src: Path, requirements: list[ChartDependency]) -> None:
    present = _subchart_names(src)
    missing = [
        req.name for req in requirements
        if req.name not in present and (not req.alias or req.alias not in present)
    ]
    if missing:
        raise UnsatisfiedDependency(missing)


def read_archive_metadata(archive: Path) -> ChartMetadata | None:
    """Read ``<chart>/Chart.yaml`` from a packaged chart, or None if it has none."""
    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar.getmembers():
                parts = member.name.split("/")
                if len(parts) == 2 and parts[1] == CHART_FILE and member.isfile():
                    handle = tar.extractfile(member)
                    if handle is None:
                        return None
                    return ChartMetadata.from_dict(yaml.safe_load(handle.read()) or {})
    except (OSError, tarfile.TarError, yaml.YAMLError, ValueError):
        logger.debug("Failed to read chart archive %s", archive, exc_info=True)
    return None


def _ignore_patterns(src: Path) -> list[str]:
    ignore_file = src / IGNORE_FILE
    if not ignore_file.is_file():
        return []
    patterns = []
    for line in ignore_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line.rstrip("/"))
    return patterns


def _is_ignored(rel: str, patterns: list[str]) -> bool:
    name = rel.rsplit("/", 1)[-1]
    return any(fnmatch.fnmatch(rel, p) or fnmatch.fnmatch(name, p) for p in patterns)


def _archive_bytes(src: Path, meta: ChartMetadata) -> bytes:
    """Gzipped tar of ``src`` under ``<name>/`` with the rewritten Chart.yaml."""
    patterns = _ignore_patterns(src)
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        chart_yaml = yaml.safe_dump(meta.to_dict(), default_flow_style=False, sort_keys=False).encode("utf-8")
        info = tarfile.TarInfo(name=f"{meta.name}/{CHART_FILE}")
        info.size = len(chart_yaml)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(chart_yaml))

        for root, dirs, files in os.walk(src):
            root_path = Path(root)
            rel_root = root_path.relative_to(src).as_posix()
            dirs[:] = sorted(
                d for d in dirs
                if not _is_ignored(d if rel_root == "." else f"{rel_root}/{d}", patterns)
            )
            for fname in sorted(files):
                rel = fname if rel_root == "." else f"{rel_root}/{fname}"
                if rel == CHART_FILE or _is_ignored(rel, patterns):
                    continue
                tar.add(root_path / fname, arcname=f"{meta.name}/{rel}", recursive=False)
    return buf.getvalue()


class ChartPackager:
    """Build chart archives and optionally file them in the local chart repository."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def package(
        self,
        src: str | Path,
        version: str,
        dest: str | Path = ".",
        save_local: bool = False,
    ) -> Path:
        """Package ``src`` as ``<dest>/<name>-<version>.tgz`` and return its path."""
        src_path = Path(src).expanduser().resolve()
        meta = load_chart_metadata(src_path)
        meta.version = version

        if src_path.name != meta.name:
            raise ChartNameMismatch(src_path.name, meta.name)

        check_dependencies(src_path, load_requirements(src_path, meta))

        # "." means the current working directory
        dest_path = Path.cwd() if str(dest) == "." else Path(dest).expanduser()
        archive = dest_path / f"{meta.name}-{version}.tgz"
        try:
            atomic_write_bytes(archive, _archive_bytes(src_path, meta))
        except OSError as e:
            raise ChartLoadError(f"failed to save: {e}") from e
        logger.info("Packaged %s", archive)

        if save_local:
            self.add_to_local_repo(archive, meta)
        return archive

    def add_to_local_repo(self, archive: Path, meta: ChartMetadata) -> Path:
        """Copy ``archive`` into the local repository and record it in its index."""
        local_dir = self.settings.local_repository_dir
        target = local_dir / archive.name
        index_path = local_dir / "index.yaml"
        try:
            atomic_write_bytes(target, archive.read_bytes())
            if index_path.exists():
                index = IndexFile.from_yaml(index_path.read_text(encoding="utf-8"))
            else:
                index = IndexFile()
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ChartLoadError(f"could not update local repository {local_dir}: {e}") from e
        if not index.has(meta.name, meta.version):
            index.add(ChartVersion(
                metadata=meta,
                urls=[target.name],
                created=from_mtime(target.stat().st_mtime),
                digest=sha256_file(target),
            ))
        index.sort_entries()
        index.refresh_generated()
        try:
            atomic_write_text(index_path, index.to_yaml())
        except OSError as e:
            raise ChartLoadError(f"could not write {index_path}: {e}") from e
        logger.info("Saved %s-%s to local repository %s", meta.name, meta.version, local_dir)
        return target
