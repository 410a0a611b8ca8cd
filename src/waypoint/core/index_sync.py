"""Refresh cached repository indexes and rebuild local chart indexes."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

import requests
import yaml

from waypoint.core.chart_packager import read_archive_metadata
from waypoint.core.errors import (
    IndexDownloadFailed,
    IndexMergeFailed,
    IndexSyncError,
    NoRepositoriesConfigured,
    WaypointError,
)
from waypoint.core.registry_client import build_session
from waypoint.core.repo_resolver import RepositoryCatalog
from waypoint.models.chart import ChartVersion
from waypoint.models.index import IndexFile
from waypoint.models.repo import LOCAL_REPO_NAME, RepositoryEntry, RepoUpdateResult
from waypoint.utils.files import atomic_write_text, sha256_file
from waypoint.utils.timestamps import from_mtime

logger = logging.getLogger(__name__)

INDEX_FILE = "index.yaml"


def load_index_file(path: Path) -> IndexFile:
    return IndexFile.from_yaml(path.read_text(encoding="utf-8"))


def write_index(index: IndexFile, path: Path) -> None:
    atomic_write_text(path, index.to_yaml())


def index_directory(directory: Path, base_url: str = "") -> IndexFile:
    """Index every chart archive in ``directory`` and its direct subdirectories."""
    index = IndexFile()
    archives = sorted(directory.glob("*.tgz")) + sorted(directory.glob("*/*.tgz"))
    for archive in archives:
        meta = read_archive_metadata(archive)
        if meta is None or not meta.name:
            raise IndexSyncError(f"{archive} is not a valid chart archive")
        if index.has(meta.name, meta.version):
            logger.debug("Skipping duplicate %s-%s at %s", meta.name, meta.version, archive)
            continue
        rel = archive.relative_to(directory).as_posix()
        url = f"{base_url.rstrip('/')}/{rel}" if base_url else rel
        index.add(ChartVersion(
            metadata=meta,
            urls=[url],
            created=from_mtime(archive.stat().st_mtime),
            digest=sha256_file(archive),
        ))
    return index


def merge_into(index: IndexFile, merge_to: Path) -> None:
    """Fold the index stored at ``merge_to`` into ``index``.

    A missing file is first written out empty so later reads see a stable file.
    """
    if not merge_to.exists():
        existing = IndexFile()
        try:
            write_index(existing, merge_to)
        except OSError as e:
            raise IndexMergeFailed(f"merge failed: could not create {merge_to}: {e}") from e
    else:
        try:
            existing = load_index_file(merge_to)
        except (OSError, yaml.YAMLError, ValueError) as e:
            raise IndexMergeFailed(f"merge failed: {e}") from e
    index.merge(existing)


SessionFactory = Callable[[], requests.Session]


class IndexSynchronizer:
    """Keeps the Helm repository cache and chart directory indexes current."""

    def __init__(
        self,
        catalog: RepositoryCatalog,
        session: requests.Session | None = None,
        session_factory: SessionFactory | None = None,
    ):
        self.catalog = catalog
        self.settings = catalog.settings
        self.session = session or build_session(catalog.settings)
        self.session_factory = session_factory or (lambda: build_session(catalog.settings))

    def update_repo(self, repo_name: str) -> Path | None:
        """Download one repository's index. The ``local`` repository is left alone."""
        entry = self.catalog.resolve(repo_name)
        if entry.name == LOCAL_REPO_NAME:
            return None
        return self.download_index(entry)

    def update_repos(self) -> list[RepoUpdateResult]:
        """Refresh every configured repository concurrently.

        One repository failing does not stop the others; each outcome is
        reported in the returned list, in configuration order. Every task
        downloads through its own session.
        """
        entries = list(self.catalog.file.repositories)
        if not entries:
            raise NoRepositoriesConfigured()
        with ThreadPoolExecutor(max_workers=len(entries), thread_name_prefix="repo-update") as pool:
            results = list(pool.map(self._update_isolated, entries))
        for result in results:
            if result.error is not None:
                logger.warning("Unable to refresh %s: %s", result.name, result.error)
        return results

    def update_index(
        self,
        chart_src: str | Path,
        base_url: str = "",
        merge_to: str | Path | None = None,
    ) -> Path:
        """Write ``<chart_src>/index.yaml`` for the archives in ``chart_src``."""
        directory = Path(chart_src).expanduser().resolve()
        if not directory.is_dir():
            raise IndexSyncError(f"{directory} is not a directory")
        index = index_directory(directory, base_url)
        if merge_to:
            merge_into(index, Path(merge_to).expanduser())
        index.sort_entries()
        index.refresh_generated()
        out = directory / INDEX_FILE
        try:
            write_index(index, out)
        except OSError as e:
            raise IndexSyncError(f"could not write {out}: {e}") from e
        logger.info("Wrote %s (%d charts)", out, len(index.entries))
        return out

    def _update_isolated(self, entry: RepositoryEntry) -> RepoUpdateResult:
        if entry.name == LOCAL_REPO_NAME:
            return RepoUpdateResult(name=entry.name, skipped=True)
        session = self.session_factory()
        try:
            self.download_index(entry, session)
        except WaypointError as e:
            return RepoUpdateResult(name=entry.name, error=e)
        finally:
            session.close()
        return RepoUpdateResult(name=entry.name)

    def download_index(self, entry: RepositoryEntry, session: requests.Session | None = None) -> Path:
        url = f"{entry.url}/{INDEX_FILE}"
        dest = entry.cache_path(self.settings.index_cache_dir)
        logger.info("Fetching %s", url)
        try:
            resp = (session or self.session).get(url, timeout=self.settings.http_timeout)
        except requests.RequestException as e:
            raise IndexDownloadFailed(f"{entry.name}: could not fetch {url}: {e}") from e
        if resp.status_code != 200:
            raise IndexDownloadFailed(f"{entry.name}: {url} returned HTTP {resp.status_code}")
        try:
            IndexFile.from_yaml(resp.text)
        except (yaml.YAMLError, ValueError) as e:
            raise IndexDownloadFailed(f"{entry.name}: {url} is not a valid chart index: {e}") from e
        try:
            atomic_write_text(dest, resp.text)
        except OSError as e:
            raise IndexDownloadFailed(f"{entry.name}: could not write {dest}: {e}") from e
        logger.debug("Cached %s index at %s", entry.name, dest)
        return dest
