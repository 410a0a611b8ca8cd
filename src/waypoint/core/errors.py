"""Exception hierarchy for release operations."""

from __future__ import annotations


class WaypointError(Exception):
    """Base class for every failure surfaced by Waypoint."""


class ConfigurationError(WaypointError):
    pass


# Container images

class EngineError(WaypointError):
    """The container engine is unreachable or refused a request."""


class BuildFailed(WaypointError):
    pass


class PushError(WaypointError):
    pass


class PushUnauthorized(PushError):
    pass


class PushFailed(PushError):
    pass


class CredentialHelperError(WaypointError):
    pass


class AmbiguousImageReference(WaypointError):
    def __init__(self, reference: str, count: int):
        self.reference = reference
        self.count = count
        super().__init__(f"{count} images found for '{reference}'; skipping")


# Charts

class ChartError(WaypointError):
    pass


class ChartLoadError(ChartError):
    pass


class ChartNameMismatch(ChartError):
    def __init__(self, directory: str, chart_name: str):
        self.directory = directory
        self.chart_name = chart_name
        super().__init__(
            f"directory name ({directory}) and Chart.yaml name ({chart_name}) must match"
        )


class UnsatisfiedDependency(ChartError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "found in requirements, but missing in charts/ directory: " + ", ".join(missing)
        )


# Chart registry

class RegistryError(WaypointError):
    pass


class _RejectedRequest(RegistryError):
    action = "request"

    def __init__(self, url: str, status: int, body: str):
        self.url = url
        self.status = status
        self.body = body
        detail = body.strip() or "<empty body>"
        super().__init__(f"chart {self.action} rejected by {url} (HTTP {status}): {detail}")


class UploadRejected(_RejectedRequest):
    action = "upload"


class DeleteRejected(_RejectedRequest):
    action = "delete"


# Repository configuration

class RepositoryError(WaypointError):
    pass


class RepositoryFileError(RepositoryError):
    pass


class RepositoryNotFound(RepositoryError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no repository named '{name}' (check the name in repositories.yaml)")


class NoRepositoriesConfigured(RepositoryError):
    def __init__(self) -> None:
        super().__init__("no repositories configured (add one with 'helm repo add')")


# Index files

class IndexSyncError(WaypointError):
    pass


class IndexDownloadFailed(IndexSyncError):
    pass


class IndexMergeFailed(IndexSyncError):
    pass


# Pipeline

class DeployFailed(WaypointError):
    pass


class ReleaseFailed(WaypointError):
    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"step '{step}' failed: {cause}")
