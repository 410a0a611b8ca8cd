"""Ordered release steps: version bump, image, chart, registry, index."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from waypoint.config.settings import Settings
from waypoint.core.chart_packager import ChartPackager
from waypoint.core.deployer import HelmDeployer
from waypoint.core.docker_client import DockerClient
from waypoint.core.errors import ConfigurationError, ReleaseFailed, WaypointError
from waypoint.core.index_sync import IndexSynchronizer
from waypoint.core.registry_client import RegistryClient, build_session
from waypoint.core.repo_resolver import RepositoryCatalog, latest_published
from waypoint.models import PipelineState, ReleaseType, StepResult, StepStatus
from waypoint.models.release import ImageRef, ReleaseConfig, ReleaseReport
from waypoint.models.version import Version

logger = logging.getLogger(__name__)


@dataclass
class ReleaseServices:
    """The collaborators a release drives."""

    catalog: RepositoryCatalog
    docker: DockerClient
    packager: ChartPackager
    registry: RegistryClient
    index: IndexSynchronizer
    deployer: HelmDeployer

    @classmethod
    def from_settings(cls, settings: Settings) -> ReleaseServices:
        catalog = RepositoryCatalog(settings)
        session = build_session(settings)
        return cls(
            catalog=catalog,
            docker=DockerClient(),
            packager=ChartPackager(settings),
            registry=RegistryClient(catalog, session=session),
            index=IndexSynchronizer(catalog, session=session),
            deployer=HelmDeployer(settings.helm_binary),
        )


class ReleaseContext:
    """State shared by the steps of one run.

    The version is assigned once, by the version step, and read by
    every later step.
    """

    def __init__(self, config: ReleaseConfig, release_type: ReleaseType, services: ReleaseServices):
        self.config = config
        self.release_type = release_type
        self.services = services
        self.image: ImageRef | None = None
        self.chart_archive: Path | None = None
        self._version: Version | None = None

    @property
    def version(self) -> Version:
        if self._version is None:
            raise ConfigurationError("version used before the resolve-version step ran")
        return self._version

    @version.setter
    def version(self, value: Version) -> None:
        if self._version is not None:
            raise ConfigurationError(f"version already resolved to {self._version}")
        self._version = value
        self.image = ImageRef.for_release(self.config.image_repository, self.config.app, value)

    @property
    def image_ref(self) -> str:
        if self.image is None:
            raise ConfigurationError("image used before the resolve-version step ran")
        return str(self.image)

    @property
    def resolved_version(self) -> Version | None:
        return self._version


@dataclass(frozen=True)
class ReleaseStep:
    name: str
    run: Callable[[ReleaseContext], None]
    description: str = ""


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def refresh_index(ctx: ReleaseContext) -> None:
    ctx.services.index.update_repo(ctx.config.chart_repo)


def resolve_version(ctx: ReleaseContext) -> None:
    cfg = ctx.config
    latest = latest_published(
        cfg.app, cfg.chart_repo, ctx.services.catalog.file, ctx.services.catalog.settings,
    )
    if ctx.release_type == ReleaseType.REBUILD:
        if latest is None:
            raise ConfigurationError(f"nothing published for {cfg.app} in {cfg.chart_repo} to rebuild")
        ctx.version = latest.bump(ReleaseType.REBUILD)
    else:
        ctx.version = (latest or Version()).bump(ctx.release_type)
    logger.info("%s: %s -> %s", cfg.app, latest or "none", ctx.version)


def build_image(ctx: ReleaseContext) -> None:
    ctx.services.docker.build_image(ctx.image_ref, ctx.config.build_context)


def push_image(ctx: ReleaseContext) -> None:
    cfg = ctx.config
    ctx.services.docker.push_image(ctx.image_ref, cfg.image_repository, cfg.credential_helper)


def package_chart(ctx: ReleaseContext) -> None:
    cfg = ctx.config
    ctx.chart_archive = ctx.services.packager.package(
        cfg.chart_dir, str(ctx.version), cfg.chart_output_dir, cfg.save_local,
    )


def upload_chart(ctx: ReleaseContext) -> None:
    cfg = ctx.config
    registry = ctx.services.registry
    version = str(ctx.version)
    if ctx.chart_archive is None:
        raise ConfigurationError("upload-chart needs the package-chart step to run first")
    # A rebuild republishes the same version, so the old archive has to go first
    if ctx.version.rebuild and registry.has_chart(cfg.app, cfg.chart_repo, version):
        registry.remove_chart(cfg.app, cfg.chart_repo, version)
    registry.upload_chart_file(ctx.chart_archive, cfg.chart_repo)


def deploy(ctx: ReleaseContext) -> None:
    cfg = ctx.config
    ctx.services.deployer.upgrade_install(
        cfg.helm_release, f"{cfg.chart_repo}/{cfg.app}", str(ctx.version), cfg.namespace,
    )


def prune_image(ctx: ReleaseContext) -> None:
    ctx.services.docker.remove_image(ctx.image_ref)


REFRESH_INDEX = ReleaseStep("refresh-index", refresh_index, "Refresh the chart repository index")
RESOLVE_VERSION = ReleaseStep("resolve-version", resolve_version, "Pick the release version")
BUILD_IMAGE = ReleaseStep("build-image", build_image, "Build the container image")
PUSH_IMAGE = ReleaseStep("push-image", push_image, "Push the image to its registry")
PACKAGE_CHART = ReleaseStep("package-chart", package_chart, "Package the chart")
UPLOAD_CHART = ReleaseStep("upload-chart", upload_chart, "Upload the chart")
DEPLOY = ReleaseStep("deploy", deploy, "Upgrade the release in the cluster")
PRUNE_IMAGE = ReleaseStep("prune-image", prune_image, "Remove the local image")

DEFAULT_STEPS: list[ReleaseStep] = [
    REFRESH_INDEX,
    RESOLVE_VERSION,
    BUILD_IMAGE,
    PUSH_IMAGE,
    PACKAGE_CHART,
    UPLOAD_CHART,
    REFRESH_INDEX,
]


def steps_for(config: ReleaseConfig) -> list[ReleaseStep]:
    """Default steps plus the optional ones the target asks for."""
    steps = list(DEFAULT_STEPS)
    if config.deploy:
        steps.append(DEPLOY)
    if config.prune_image:
        steps.append(PRUNE_IMAGE)
    return steps


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

StepCallback = Callable[[int, int, ReleaseStep], None]


class Release:
    """One run of the pipeline.

    Steps run strictly in order and the first failure stops the run.
    Nothing already done is undone: a pushed image or an uploaded chart
    stays where it is.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        release_type: ReleaseType,
        services: ReleaseServices,
        on_step: StepCallback | None = None,
    ):
        self.context = ReleaseContext(config, release_type, services)
        self.on_step = on_step
        self.state = PipelineState.PENDING
        self.current_step = ""
        self.failed_step = ""
        self.error: Exception | None = None
        self.results: list[StepResult] = []

    def do(self, steps: list[ReleaseStep]) -> ReleaseReport:
        if self.state != PipelineState.PENDING:
            raise ConfigurationError(f"release already {self.state.value}")
        self.state = PipelineState.RUNNING
        total = len(steps)

        for i, step in enumerate(steps, 1):
            self.current_step = step.name
            if self.on_step:
                self.on_step(i, total, step)
            logger.info("[%d/%d] %s", i, total, step.name)
            started = time.monotonic()
            try:
                step.run(self.context)
            except Exception as e:
                self._fail(step, e, time.monotonic() - started)
                if isinstance(e, WaypointError):
                    raise ReleaseFailed(step.name, e) from e
                raise
            self.results.append(StepResult(step.name, StepStatus.SUCCEEDED, time.monotonic() - started))

        self.current_step = ""
        self.state = PipelineState.SUCCEEDED
        return self.report()

    def _fail(self, step: ReleaseStep, error: Exception, duration: float) -> None:
        self.state = PipelineState.FAILED
        self.failed_step = step.name
        self.error = error
        self.results.append(StepResult(step.name, StepStatus.FAILED, duration, str(error)))
        logger.debug("Step %s failed", step.name, exc_info=True)

    def report(self) -> ReleaseReport:
        ctx = self.context
        return ReleaseReport(
            app=ctx.config.app,
            target=ctx.config.target,
            state=self.state,
            version=ctx.resolved_version,
            image=ctx.image,
            chart_archive=ctx.chart_archive,
            steps=list(self.results),
            failed_step=self.failed_step,
            error=str(self.error) if self.error else "",
        )
