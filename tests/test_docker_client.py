"""Tests for the Docker engine wrapper."""

from unittest.mock import MagicMock

import pytest
from docker.credentials import StoreError
from docker.errors import APIError

from waypoint.core.docker_client import DockerClient, registry_host
from waypoint.core.errors import (
    AmbiguousImageReference,
    BuildFailed,
    CredentialHelperError,
    PushFailed,
    PushUnauthorized,
)


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def store():
    store = MagicMock()
    store.get.return_value = {"ServerURL": "https://gcr.io", "Username": "oauth2", "Secret": "s3cret"}
    return store


@pytest.fixture
def client(api, store):
    return DockerClient(api=api, store_factory=lambda helper: store)


@pytest.fixture
def build_ctx(tmp_path):
    ctx = tmp_path / "app"
    ctx.mkdir()
    (ctx / "Dockerfile").write_text("FROM scratch\nCOPY app.txt /\n")
    (ctx / "app.txt").write_text("hello")
    return ctx


def test_registry_host():
    assert registry_host("gcr.io/acme/foo") == "gcr.io"


class TestBuild:
    """Tests for building images."""

    def test_success(self, client, api, build_ctx):
        api.build.return_value = iter([{"stream": "Step 1/2 : FROM scratch\n"}, {"stream": "Successfully built\n"}])
        client.build_image("gcr.io/acme/foo:1.0.0", build_ctx)

        kwargs = api.build.call_args.kwargs
        assert kwargs["tag"] == "gcr.io/acme/foo:1.0.0"
        assert kwargs["custom_context"] is True

    def test_error_still_drains_stream(self, client, api, build_ctx):
        consumed = []

        def stream():
            for chunk in (
                {"stream": "Step 1/2\n"},
                {"error": "COPY failed: no such file", "errorDetail": {"message": "COPY failed: no such file"}},
                {"stream": "trailing output\n"},
            ):
                consumed.append(chunk)
                yield chunk

        api.build.return_value = stream()
        with pytest.raises(BuildFailed, match="COPY failed"):
            client.build_image("foo:1.0.0", build_ctx)
        assert len(consumed) == 3

    def test_missing_context(self, client, tmp_path):
        with pytest.raises(BuildFailed, match="not a directory"):
            client.build_image("foo:1.0.0", tmp_path / "nope")


class TestPush:
    """Tests for pushing images."""

    def test_success_with_helper(self, client, api):
        api.push.return_value = iter([{"status": "Pushed"}, {"status": "1.0.0: digest: sha256:abc"}])
        client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")

        args, kwargs = api.push.call_args
        assert args[0] == "gcr.io/acme/foo"
        assert kwargs["tag"] == "1.0.0"
        assert kwargs["auth_config"] == {"username": "oauth2", "password": "s3cret", "serveraddress": "gcr.io"}

    def test_without_helper(self, client, api):
        api.push.return_value = iter([{"status": "Pushed"}])
        client.push_image("registry.local:5000/foo:1.0.0", "registry.local:5000", "")
        args, kwargs = api.push.call_args
        assert args[0] == "registry.local:5000/foo"
        assert kwargs["auth_config"] is None

    def test_in_band_unauthorized(self, client, api):
        api.push.return_value = iter([
            {"status": "Preparing"},
            {"error": "unauthorized: authentication required",
             "errorDetail": {"message": "unauthorized: authentication required"}},
        ])
        with pytest.raises(PushUnauthorized):
            client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")

    def test_in_band_failure(self, client, api):
        api.push.return_value = iter([{"error": "blob upload unknown", "errorDetail": {"message": "blob upload unknown"}}])
        with pytest.raises(PushFailed, match="blob upload unknown"):
            client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")

    def test_http_unauthorized(self, client, api):
        api.push.side_effect = APIError("denied", response=MagicMock(status_code=401))
        with pytest.raises(PushUnauthorized):
            client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")

    def test_helper_failure(self, client, api, store):
        store.get.side_effect = StoreError("helper not installed")
        with pytest.raises(CredentialHelperError, match="helper not installed"):
            client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")
        api.push.assert_not_called()


class TestCredentials:
    """Tests for credential helper lookups."""

    def test_helper_queried_for_registry_host(self, client, store):
        creds = client.credentials("gcr.io/acme", "gcr")
        assert creds == {"username": "oauth2", "password": "s3cret", "serveraddress": "gcr.io"}
        store.get.assert_called_once_with("https://gcr.io")

    def test_push_sends_helper_credentials(self, client, api, store):
        api.push.return_value = iter([{"status": "Pushed"}])
        client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")
        store.get.assert_called_once_with("https://gcr.io")
        assert api.push.call_args.kwargs["auth_config"]["password"] == "s3cret"

    def test_empty_credentials(self, client, api, store):
        store.get.return_value = {"Username": "", "Secret": ""}
        with pytest.raises(CredentialHelperError, match="no credentials"):
            client.push_image("gcr.io/acme/foo:1.0.0", "gcr.io/acme", "gcr")
        api.push.assert_not_called()


class TestRemove:
    """Only an exact single match is removed."""

    def test_single_match(self, client, api):
        api.images.return_value = [{"Id": "sha256:abc"}]
        client.remove_image("gcr.io/acme/foo:1.0.0")
        api.images.assert_called_once_with(filters={"reference": "gcr.io/acme/foo:1.0.0"})
        api.remove_image.assert_called_once_with("sha256:abc")

    @pytest.mark.parametrize("images", [[], [{"Id": "a"}, {"Id": "b"}]])
    def test_ambiguous(self, client, api, images):
        api.images.return_value = images
        with pytest.raises(AmbiguousImageReference, match=f"{len(images)} images found"):
            client.remove_image("gcr.io/acme/foo:1.0.0")
        api.remove_image.assert_not_called()
