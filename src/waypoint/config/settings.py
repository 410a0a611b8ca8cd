"""Helm locations and HTTP defaults."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path


def _default_helm_cache_dir() -> Path:
    """Return the Helm repository cache directory for the current platform.

    Checks HELM_REPOSITORY_CACHE and HELM_CACHE_HOME env vars first,
    matching helm's own resolution order.
    """
    repo_cache = os.environ.get("HELM_REPOSITORY_CACHE", "")
    if repo_cache:
        return Path(repo_cache)
    cache_home = os.environ.get("HELM_CACHE_HOME", "")
    if cache_home:
        return Path(cache_home) / "repository"
    if platform.system() == "Windows":
        temp = os.environ.get("TEMP", "")
        if temp:
            return Path(temp) / "helm" / "repository"
        return _windows_appdata() / "helm" / "repository"
    xdg = os.environ.get("XDG_CACHE_HOME", "")
    if xdg:
        return Path(xdg) / "helm" / "repository"
    return Path.home() / ".cache" / "helm" / "repository"


def _default_helm_config_dir() -> Path:
    config_home = os.environ.get("HELM_CONFIG_HOME", "")
    if config_home:
        return Path(config_home)
    if platform.system() == "Windows":
        return _windows_appdata() / "helm"
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "helm"
    return Path.home() / ".config" / "helm"


def _default_helm_data_dir() -> Path:
    data_home = os.environ.get("HELM_DATA_HOME", "")
    if data_home:
        return Path(data_home)
    if platform.system() == "Windows":
        return _windows_appdata() / "helm"
    xdg = os.environ.get("XDG_DATA_HOME", "")
    if xdg:
        return Path(xdg) / "helm"
    return Path.home() / ".local" / "share" / "helm"


def _windows_appdata() -> Path:
    appdata = os.environ.get("APPDATA", "")
    if appdata:
        return Path(appdata)
    return Path.home() / "AppData" / "Roaming"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Settings:
    helm_cache_dir: Path = field(default_factory=_default_helm_cache_dir)
    helm_config_dir: Path = field(default_factory=_default_helm_config_dir)
    helm_data_dir: Path = field(default_factory=_default_helm_data_dir)
    http_timeout: float = field(default_factory=lambda: _env_float("WAYPOINT_HTTP_TIMEOUT", 30.0))
    http_retries: int = field(default_factory=lambda: _env_int("WAYPOINT_HTTP_RETRIES", 2))
    helm_binary: str = "helm"

    @property
    def repositories_file(self) -> Path:
        return self.helm_config_dir / "repositories.yaml"

    @property
    def index_cache_dir(self) -> Path:
        return self.helm_cache_dir

    @property
    def local_repository_dir(self) -> Path:
        return self.helm_data_dir / "repository" / "local"
