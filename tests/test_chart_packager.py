"""Tests for chart packaging."""

import tarfile

import pytest
import yaml

from waypoint.core.chart_packager import ChartPackager, read_archive_metadata
from waypoint.core.errors import ChartLoadError, ChartNameMismatch, UnsatisfiedDependency
from waypoint.models.index import IndexFile


def _members(archive):
    with tarfile.open(archive, "r:gz") as tar:
        return tar.getnames()


class TestPackage:
    """Tests for ChartPackager.package."""

    def test_archive_name_and_version(self, make_chart, packager, tmp_path):
        src = make_chart("foo")
        archive = packager.package(src, "1.3.0", tmp_path / "out")

        assert archive == tmp_path / "out" / "foo-1.3.0.tgz"
        meta = read_archive_metadata(archive)
        assert meta.name == "foo"
        assert meta.version == "1.3.0"

    def test_layout_under_chart_name(self, make_chart, packager, tmp_path):
        archive = packager.package(make_chart("foo"), "1.0.0", tmp_path)
        names = _members(archive)
        assert names[0] == "foo/Chart.yaml"
        assert "foo/values.yaml" in names
        assert "foo/templates/deployment.yaml" in names

    def test_source_chart_untouched(self, make_chart, packager, tmp_path):
        src = make_chart("foo")
        packager.package(src, "2.0.0", tmp_path)
        assert yaml.safe_load((src / "Chart.yaml").read_text())["version"] == "0.0.0"

    def test_dot_means_working_directory(self, make_chart, packager, tmp_path, monkeypatch):
        workdir = tmp_path / "work"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        archive = packager.package(make_chart("foo"), "1.0.0", ".")
        assert archive == workdir / "foo-1.0.0.tgz"
        assert archive.exists()

    def test_helmignore(self, make_chart, packager, tmp_path):
        src = make_chart("foo")
        (src / ".helmignore").write_text("# editor files\n*.swp\nsecrets/\n")
        (src / "values.yaml.swp").write_text("x")
        (src / "secrets").mkdir()
        (src / "secrets" / "token").write_text("x")

        names = _members(packager.package(src, "1.0.0", tmp_path))

        assert "foo/values.yaml.swp" not in names
        assert not any(n.startswith("foo/secrets") for n in names)

    @pytest.mark.parametrize("chart_name, dir_name", [("foo", "bar"), ("foo", "foo-chart"), ("Foo", "foo")])
    def test_directory_name_must_match_chart(self, make_chart, packager, tmp_path, chart_name, dir_name):
        src = make_chart(chart_name, dir_name=dir_name)
        with pytest.raises(ChartNameMismatch, match=dir_name):
            packager.package(src, "1.0.0", tmp_path)

    def test_not_a_chart(self, packager, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(ChartLoadError, match="Chart.yaml"):
            packager.package(tmp_path / "empty", "1.0.0", tmp_path)


class TestDependencies:
    """Declared dependencies must be vendored under charts/."""

    def test_missing_dependency(self, make_chart, packager, tmp_path):
        src = make_chart("foo")
        (src / "requirements.yaml").write_text(yaml.safe_dump({
            "dependencies": [{"name": "redis", "version": "1.0.0"}],
        }))
        with pytest.raises(UnsatisfiedDependency, match="redis"):
            packager.package(src, "1.0.0", tmp_path)
        assert not (tmp_path / "foo-1.0.0.tgz").exists()

    def test_vendored_dependency(self, make_chart, packager, tmp_path):
        src = make_chart("foo")
        (src / "requirements.yaml").write_text(yaml.safe_dump({
            "dependencies": [{"name": "redis", "version": "1.0.0"}],
        }))
        sub = src / "charts" / "redis"
        sub.mkdir(parents=True)
        (sub / "Chart.yaml").write_text(yaml.safe_dump({"name": "redis", "version": "1.0.0"}))

        archive = packager.package(src, "1.0.0", tmp_path)
        assert "foo/charts/redis/Chart.yaml" in _members(archive)

    def test_dependency_declared_in_chart_yaml(self, make_chart, packager, tmp_path):
        src = make_chart("foo", dependencies=[{"name": "postgres", "version": "9.0.0"}])
        with pytest.raises(UnsatisfiedDependency, match="postgres"):
            packager.package(src, "1.0.0", tmp_path)

    def test_packaged_subchart_satisfies(self, make_chart, packager, tmp_path):
        dep_src = make_chart("postgres")
        charts = tmp_path / "vendored"
        packager.package(dep_src, "9.0.0", charts)

        src = make_chart("foo", dependencies=[{"name": "postgres", "version": "9.0.0"}])
        (src / "charts").mkdir()
        (charts / "postgres-9.0.0.tgz").rename(src / "charts" / "postgres-9.0.0.tgz")

        assert packager.package(src, "1.0.0", tmp_path).exists()


class TestSaveLocal:
    """Tests for filing a packaged chart in the local repository."""

    def test_adds_to_local_index(self, make_chart, packager, settings, tmp_path):
        packager.package(make_chart("foo"), "1.0.0", tmp_path, save_local=True)

        local = settings.local_repository_dir
        assert (local / "foo-1.0.0.tgz").exists()
        index = IndexFile.from_yaml((local / "index.yaml").read_text())
        assert index.versions("foo") == ["1.0.0"]
        assert index.entries["foo"][0].digest

    def test_second_version_appended(self, make_chart, settings, tmp_path):
        packager = ChartPackager(settings)
        src = make_chart("foo")
        packager.package(src, "1.0.0", tmp_path, save_local=True)
        packager.package(src, "1.1.0", tmp_path, save_local=True)

        index = IndexFile.from_yaml((settings.local_repository_dir / "index.yaml").read_text())
        assert index.versions("foo") == ["1.1.0", "1.0.0"]


class TestChartYamlPreserved:
    """Only the version of the packaged Chart.yaml is rewritten."""

    def _archived_chart_yaml(self, archive):
        with tarfile.open(archive, "r:gz") as tar:
            return yaml.safe_load(tar.extractfile("foo/Chart.yaml").read())

    def test_unmodelled_keys_survive(self, make_chart, packager, tmp_path):
        src = make_chart(
            "foo",
            apiVersion="v2",
            kubeVersion=">=1.20.0",
            deprecated=True,
            dependencies=[{
                "name": "redis",
                "version": "1.0.0",
                "tags": ["cache"],
                "import-values": ["child"],
                "enabled": False,
            }],
        )
        sub = src / "charts" / "redis"
        sub.mkdir(parents=True)
        (sub / "Chart.yaml").write_text(yaml.safe_dump({"name": "redis", "version": "1.0.0"}))

        chart = self._archived_chart_yaml(packager.package(src, "1.3.0", tmp_path))

        assert chart["version"] == "1.3.0"
        assert chart["kubeVersion"] == ">=1.20.0"
        assert chart["deprecated"] is True
        dep = chart["dependencies"][0]
        assert dep["tags"] == ["cache"]
        assert dep["import-values"] == ["child"]
        assert dep["enabled"] is False

    def test_malformed_dependency(self, make_chart, packager, tmp_path):
        src = make_chart("foo", dependencies=["redis"])
        with pytest.raises(ChartLoadError, match="dependency must be a mapping"):
            packager.package(src, "1.0.0", tmp_path)
