"""Shared fixtures for the waypoint test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from waypoint.config.settings import Settings
from waypoint.core.chart_packager import ChartPackager


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temp directory instead of the real Helm home."""
    return Settings(
        helm_cache_dir=tmp_path / "helm-cache",
        helm_config_dir=tmp_path / "helm-config",
        helm_data_dir=tmp_path / "helm-data",
        http_timeout=5.0,
        http_retries=0,
    )


@pytest.fixture
def write_repositories(settings):
    """Write repositories.yaml from (name, url) pairs."""

    def _write(*repos: tuple[str, str]) -> Path:
        path = settings.repositories_file
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "apiVersion": "v1",
            "repositories": [{"name": name, "url": url} for name, url in repos],
        }
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_cached_index(settings):
    """Write a cached index for one repository listing ``versions`` of ``app``."""

    def _write(repo: str, app: str, versions: list[str]) -> Path:
        path = settings.index_cache_dir / f"{repo}-index.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "apiVersion": "v1",
            "entries": {
                app: [
                    {"name": app, "version": v, "urls": [f"charts/{app}-{v}.tgz"]}
                    for v in versions
                ],
            },
            "generated": "2024-01-01T00:00:00Z",
        }
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_chart(tmp_path):
    """Create a minimal chart directory named after the chart."""

    def _make(name: str = "foo", dir_name: str | None = None, **chart_fields) -> Path:
        chart_dir = tmp_path / "src" / (dir_name or name)
        (chart_dir / "templates").mkdir(parents=True)
        chart = {"apiVersion": "v1", "name": name, "version": "0.0.0", "description": "test chart"}
        chart.update(chart_fields)
        (chart_dir / "Chart.yaml").write_text(yaml.safe_dump(chart), encoding="utf-8")
        (chart_dir / "values.yaml").write_text("replicas: 1\n", encoding="utf-8")
        (chart_dir / "templates" / "deployment.yaml").write_text("kind: Deployment\n", encoding="utf-8")
        return chart_dir

    return _make


@pytest.fixture
def packager(settings):
    return ChartPackager(settings)
