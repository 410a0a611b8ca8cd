"""HTTP client for a ChartMuseum-style chart registry."""

from __future__ import annotations

import logging
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from waypoint.config.settings import Settings
from waypoint.core.errors import DeleteRejected, RegistryError, UploadRejected
from waypoint.core.repo_resolver import RepositoryCatalog

logger = logging.getLogger(__name__)

CHARTS_API = "/api/charts"


def build_session(settings: Settings) -> requests.Session:
    """Session that retries idempotent reads on connection errors and 5xx gateways."""
    retry = Retry(
        total=settings.http_retries,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class RegistryClient:
    """Upload, delete and probe charts in a named chart registry."""

    def __init__(
        self,
        catalog: RepositoryCatalog,
        session: requests.Session | None = None,
    ):
        self.catalog = catalog
        self.timeout = catalog.settings.http_timeout
        self.session = session or build_session(catalog.settings)

    def charts_url(self, repo_name: str) -> str:
        return f"{self.catalog.url(repo_name)}{CHARTS_API}"

    def chart_url(self, app: str, repo_name: str, version: str) -> str:
        return f"{self.charts_url(repo_name)}/{app}/{version}"

    def upload_chart(self, chart: bytes, repo_name: str) -> None:
        url = self.charts_url(repo_name)
        logger.info("Uploading chart (%d bytes) to %s", len(chart), url)
        try:
            resp = self.session.post(
                url,
                data=chart,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RegistryError(f"upload to {url} failed: {e}") from e
        if not 200 <= resp.status_code < 300:
            raise UploadRejected(url, resp.status_code, resp.text)

    def upload_chart_file(self, archive: Path, repo_name: str) -> None:
        self.upload_chart(archive.read_bytes(), repo_name)

    def remove_chart(self, app: str, repo_name: str, version: str) -> None:
        url = self.chart_url(app, repo_name, version)
        logger.info("Deleting %s", url)
        try:
            resp = self.session.delete(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise RegistryError(f"delete of {url} failed: {e}") from e
        if resp.status_code != 200:
            raise DeleteRejected(url, resp.status_code, resp.text)

    def has_chart(self, app: str, repo_name: str, version: str) -> bool:
        """Best-effort existence probe: an unreachable registry reads as absent."""
        url = self.chart_url(app, repo_name, version)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException:
            logger.debug("Existence probe of %s failed", url, exc_info=True)
            return False
        return resp.status_code == 200
