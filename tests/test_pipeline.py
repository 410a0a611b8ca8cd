"""Tests for the release pipeline."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from waypoint.core.errors import ConfigurationError, PushUnauthorized, ReleaseFailed
from waypoint.core.pipeline import (
    DEFAULT_STEPS,
    DEPLOY,
    PRUNE_IMAGE,
    Release,
    ReleaseServices,
    steps_for,
)
from waypoint.core.repo_resolver import RepositoryCatalog
from waypoint.models import PipelineState, ReleaseType, StepStatus
from waypoint.models.release import ReleaseConfig
from waypoint.models.version import Version


@pytest.fixture
def config(tmp_path):
    return ReleaseConfig(
        app="foo",
        target="staging",
        chart_dir=tmp_path / "charts" / "foo",
        build_context=tmp_path,
        image_repository="gcr.io/acme",
        chart_repo="stable",
        credential_helper="gcr",
        chart_output_dir=tmp_path / "dist",
    )


@pytest.fixture
def services(settings, write_repositories, write_cached_index, tmp_path):
    write_repositories(("stable", "https://charts.example.com"))
    write_cached_index("stable", "foo", ["1.0.0", "1.2.3", "1.10.0-rc.1"])
    services = ReleaseServices(
        catalog=RepositoryCatalog(settings),
        docker=MagicMock(),
        packager=MagicMock(),
        registry=MagicMock(),
        index=MagicMock(),
        deployer=MagicMock(),
    )
    services.packager.package.return_value = tmp_path / "dist" / "foo-1.3.0.tgz"
    services.registry.has_chart.return_value = False
    return services


class TestRelease:
    """Tests for a full run of the default steps."""

    def test_minor_release(self, config, services, tmp_path):
        report = Release(config, ReleaseType.MINOR, services).do(steps_for(config))

        assert report.state == PipelineState.SUCCEEDED
        assert report.version == Version(1, 3, 0)
        assert str(report.image) == "gcr.io/acme/foo:1.3.0"
        services.docker.build_image.assert_called_once_with("gcr.io/acme/foo:1.3.0", tmp_path)
        services.docker.push_image.assert_called_once_with("gcr.io/acme/foo:1.3.0", "gcr.io/acme", "gcr")
        services.packager.package.assert_called_once_with(
            tmp_path / "charts" / "foo", "1.3.0", tmp_path / "dist", False,
        )
        services.registry.upload_chart_file.assert_called_once_with(tmp_path / "dist" / "foo-1.3.0.tgz", "stable")
        services.registry.remove_chart.assert_not_called()
        assert services.index.update_repo.call_count == 2
        assert [s.name for s in report.steps] == [s.name for s in DEFAULT_STEPS]

    def test_first_release_starts_from_zero(self, config, services, settings):
        (settings.index_cache_dir / "stable-index.yaml").unlink()
        report = Release(config, ReleaseType.PATCH, services).do(steps_for(config))
        assert report.version == Version(0, 0, 1)

    def test_stops_at_first_failure(self, config, services):
        services.docker.push_image.side_effect = PushUnauthorized("unauthorized")
        run = Release(config, ReleaseType.MINOR, services)

        with pytest.raises(ReleaseFailed, match="push-image") as exc_info:
            run.do(steps_for(config))

        assert isinstance(exc_info.value.__cause__, PushUnauthorized)
        assert run.state == PipelineState.FAILED
        assert run.failed_step == "push-image"
        assert run.results[-1].status == StepStatus.FAILED
        services.packager.package.assert_not_called()
        services.registry.upload_chart_file.assert_not_called()

        report = run.report()
        assert report.version == Version(1, 3, 0)
        assert "unauthorized" in report.error

    def test_runs_only_once(self, config, services):
        run = Release(config, ReleaseType.PATCH, services)
        run.do(steps_for(config))
        with pytest.raises(ConfigurationError):
            run.do(steps_for(config))

    def test_step_callback(self, config, services):
        seen = []
        Release(config, ReleaseType.PATCH, services, on_step=lambda i, n, s: seen.append((i, n, s.name))).do(
            steps_for(config),
        )
        assert seen[0] == (1, 7, "refresh-index")
        assert seen[-1] == (7, 7, "refresh-index")


class TestRebuild:
    """Tests for republishing the latest version."""

    def test_replaces_existing_chart(self, config, services):
        services.registry.has_chart.return_value = True
        report = Release(config, ReleaseType.REBUILD, services).do(steps_for(config))

        assert str(report.version) == "1.2.3"
        services.registry.has_chart.assert_called_once_with("foo", "stable", "1.2.3")
        services.registry.remove_chart.assert_called_once_with("foo", "stable", "1.2.3")
        services.registry.upload_chart_file.assert_called_once()

    def test_nothing_published(self, config, services, settings):
        (settings.index_cache_dir / "stable-index.yaml").unlink()
        run = Release(config, ReleaseType.REBUILD, services)
        with pytest.raises(ReleaseFailed, match="nothing published"):
            run.do(steps_for(config))
        assert run.failed_step == "resolve-version"
        services.docker.build_image.assert_not_called()


class TestOptionalSteps:
    """Tests for deploy and prune."""

    def test_default_steps(self, config):
        assert steps_for(config) == DEFAULT_STEPS

    def test_deploy_then_prune(self, tmp_path):
        cfg = ReleaseConfig(
            app="foo", target="prod", chart_dir=tmp_path, build_context=tmp_path,
            image_repository="gcr.io/acme", chart_repo="stable",
            deploy=True, namespace="apps", prune_image=True,
        )
        assert steps_for(cfg)[-2:] == [DEPLOY, PRUNE_IMAGE]

    def test_deploy_and_prune_run(self, services, tmp_path):
        cfg = ReleaseConfig(
            app="foo", target="prod", chart_dir=Path("charts/foo"), build_context=tmp_path,
            image_repository="gcr.io/acme", chart_repo="stable",
            deploy=True, namespace="apps", prune_image=True,
        )
        Release(cfg, ReleaseType.PATCH, services).do(steps_for(cfg))

        services.deployer.upgrade_install.assert_called_once_with("foo-prod", "stable/foo", "1.2.4", "apps")
        services.docker.remove_image.assert_called_once_with("gcr.io/acme/foo:1.2.4")
