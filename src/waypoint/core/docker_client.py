"""Docker Engine API wrapper: build, push and remove release images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any, Callable, Iterable

import docker
import requests
from docker.credentials import Store, StoreError
from docker.errors import APIError, DockerException
from docker.utils import parse_repository_tag, tar

from waypoint.core.errors import (
    AmbiguousImageReference,
    BuildFailed,
    CredentialHelperError,
    EngineError,
    PushFailed,
    PushUnauthorized,
)
from waypoint.models.stream import StreamMessage

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str], Any]


def registry_host(repo: str) -> str:
    """``gcr.io/acme/app`` -> ``gcr.io``."""
    return repo.split("/", 1)[0]


def _read_dockerignore(ctx_dir: Path) -> list[str]:
    ignore_file = ctx_dir / ".dockerignore"
    if not ignore_file.is_file():
        return []
    patterns = []
    for line in ignore_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


class DockerClient:
    """Thin wrapper around the low-level Docker SDK client."""

    def __init__(
        self,
        api: docker.APIClient | None = None,
        store_factory: StoreFactory = Store,
    ):
        self._api = api
        self._store_factory = store_factory

    @property
    def api(self) -> docker.APIClient:
        if self._api is None:
            try:
                self._api = docker.from_env().api
            except DockerException as e:
                raise EngineError(f"cannot reach the Docker engine: {e}") from e
        return self._api

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build_context(self, build_ctx: str | Path) -> IO[bytes]:
        """Tar ``build_ctx`` (``~`` expanded), honouring ``.dockerignore``."""
        ctx_dir = Path(build_ctx).expanduser()
        if not ctx_dir.is_dir():
            raise BuildFailed(f"build context {ctx_dir} is not a directory")
        try:
            return tar(str(ctx_dir), exclude=_read_dockerignore(ctx_dir))
        except OSError as e:
            raise BuildFailed(f"could not archive build context {ctx_dir}: {e}") from e

    def build_image(self, tagged_image_name: str, build_ctx: str | Path) -> None:
        """Build ``tagged_image_name`` from ``build_ctx``.

        The whole build log is drained even after an error message shows
        up, so the engine is never left blocked on an unread stream.
        """
        context = self.build_context(build_ctx)
        logger.info("Building %s from %s", tagged_image_name, build_ctx)
        try:
            stream = self.api.build(
                fileobj=context,
                custom_context=True,
                tag=tagged_image_name,
                rm=True,
                decode=True,
            )
            failure = self._drain(stream)
        except (DockerException, requests.RequestException, OSError) as e:
            raise BuildFailed(f"build of {tagged_image_name} failed: {e}") from e
        finally:
            context.close()

        if failure is not None:
            raise BuildFailed(f"build of {tagged_image_name} failed: {failure.error}")

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def credentials(self, repo: str, credential_helper: str) -> dict[str, str]:
        """Ask ``docker-credential-<helper>`` for the registry hosting ``repo``.

        The returned mapping is handed to the SDK as ``auth_config``, which
        sends it base64-encoded JSON in the X-Registry-Auth header.
        """
        if not credential_helper:
            raise CredentialHelperError("no credential helper configured")
        host = registry_host(repo)
        server = f"https://{host}"
        try:
            creds = self._store_factory(credential_helper).get(server)
        except StoreError as e:
            raise CredentialHelperError(
                f"credential helper '{credential_helper}' failed for {server}: {e}"
            ) from e
        username = creds.get("Username")
        secret = creds.get("Secret")
        if not username or not secret:
            raise CredentialHelperError(
                f"credential helper '{credential_helper}' returned no credentials for {server}"
            )
        return {"username": username, "password": secret, "serveraddress": host}

    def push_image(self, ref: str, repo: str, credential_helper: str) -> None:
        """Push ``ref`` to its registry.

        Registries report most failures in-band, after the stream has
        opened successfully, so the outcome is decided by the decoded
        stream messages rather than by the HTTP status.
        """
        auth_config = self.credentials(repo, credential_helper) if credential_helper else None
        repository, tag = parse_repository_tag(ref)
        logger.info("Pushing %s", ref)
        try:
            stream = self.api.push(
                repository,
                tag=tag,
                stream=True,
                decode=True,
                auth_config=auth_config,
            )
            failure = self._drain(stream)
        except APIError as e:
            if e.status_code == 401:
                raise PushUnauthorized(f"push of {ref} unauthorized: {e.explanation or e}") from e
            raise PushFailed(f"push of {ref} failed: {e}") from e
        except (DockerException, requests.RequestException, OSError) as e:
            raise PushFailed(f"push of {ref} failed: {e}") from e

        if failure is None:
            return
        if failure.is_unauthorized:
            raise PushUnauthorized(f"push of {ref} unauthorized: {failure.error}")
        raise PushFailed(f"push of {ref} failed: {failure.error}")

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove_image(self, tagged_image_name: str) -> None:
        """Remove the one local image matching ``tagged_image_name`` exactly."""
        try:
            images = self.api.images(filters={"reference": tagged_image_name})
        except DockerException as e:
            raise EngineError(f"could not list images for {tagged_image_name}: {e}") from e
        if len(images) != 1:
            raise AmbiguousImageReference(tagged_image_name, len(images))
        image_id = images[0]["Id"]
        logger.info("Removing image %s (%s)", tagged_image_name, image_id)
        try:
            self.api.remove_image(image_id)
        except DockerException as e:
            raise EngineError(f"could not remove image {tagged_image_name}: {e}") from e

    @staticmethod
    def _drain(stream: Iterable[Any]) -> StreamMessage | None:
        """Consume the stream to the end, returning its first error message."""
        failure: StreamMessage | None = None
        for chunk in stream:
            msg = StreamMessage.from_dict(chunk)
            if msg.is_error:
                if failure is None:
                    failure = msg
                logger.debug("engine error: %s", msg.error)
            elif msg.stream:
                logger.debug(msg.stream.rstrip())
            elif msg.status:
                logger.debug("%s %s", msg.status, msg.progress)
        return failure
