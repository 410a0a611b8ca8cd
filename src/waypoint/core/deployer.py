"""Roll a released chart out to a cluster through the helm CLI."""

from __future__ import annotations

import logging
import subprocess

from waypoint.core.errors import DeployFailed

logger = logging.getLogger(__name__)


class HelmDeployer:
    def __init__(self, helm_binary: str = "helm", timeout: str = "10m"):
        self.helm_binary = helm_binary
        self.timeout = timeout

    def upgrade_install(
        self,
        release_name: str,
        chart_ref: str,
        version: str,
        namespace: str,
    ) -> None:
        """Run ``helm upgrade --install``. A failure is not rolled back."""
        cmd = [
            self.helm_binary,
            "upgrade",
            "--install",
            release_name,
            chart_ref,
            "--version",
            version,
            "--namespace",
            namespace,
            "--create-namespace",
            "--wait",
            "--timeout",
            self.timeout,
        ]
        logger.info("Deploying %s %s to namespace %s", chart_ref, version, namespace)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            raise DeployFailed(
                f"{self.helm_binary} CLI not found. Install helm: https://helm.sh/docs/intro/install/"
            ) from None
        if result.returncode != 0:
            raise DeployFailed(f"helm upgrade failed: {result.stderr.strip()}")
        logger.debug(result.stdout)
