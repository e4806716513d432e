import logging
import time
from pathlib import Path
from typing import Callable, Optional

from ...config import TARGET_PORT, PollingConfig
from ...console import Reporter
from ..cluster import HelmClient, OcClient, require_dir, require_file
from .endpoint import EndpointResolver
from .models import EndpointHandle

logger = logging.getLogger(__name__)


class EstapInstaller:
    """Installs or upgrades the E-STAP chart and resolves its external endpoint."""

    def __init__(
        self,
        oc: OcClient,
        helm: HelmClient,
        polling: Optional[PollingConfig] = None,
        rollout_timeout: int = 300,
        port: int = TARGET_PORT,
        reporter: Optional[Reporter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.oc = oc
        self.helm = helm
        self.polling = polling or PollingConfig()
        self.rollout_timeout = rollout_timeout
        self.port = port
        self.reporter = reporter or Reporter()
        self._sleep = sleep

    def install_or_upgrade(
        self,
        namespace: str,
        release: str,
        chart_dir: Path,
        values_file: Path,
    ) -> EndpointHandle:
        """
        Install/upgrade the release and return its load-balancer endpoint.

        Logic:
        1. Check the chart directory and values file exist
        2. helm upgrade --install
        3. Wait for deploy/<release>-estap (timeout is only a warning)
        4. Locate the LB service: <release>-estap-lb, else scan for port 8888
        5. Poll for the external hostname/IP (exhaustion is only a warning)

        Raises:
            PreconditionError: chart dir or values file missing
            ServiceNotFoundError: no LoadBalancer service on the target port
        """
        self.reporter.step(f"Install/upgrade E-STAP in {namespace} (release={release})")
        require_dir(chart_dir, "chart dir")
        require_file(values_file, "values file")

        installed = self.helm.upgrade_install(release, chart_dir, namespace, [values_file])
        self.reporter.raw(installed.stdout)

        deployment = f"{release}-estap"
        self.reporter.step(f"Wait for deploy/{deployment}")
        scoped = self.oc.in_namespace(namespace)
        if not scoped.rollout_status(deployment, self.rollout_timeout):
            self.reporter.warn(
                f"deploy/{deployment} not rolled out after {self.rollout_timeout}s; continuing"
            )

        resolver = EndpointResolver(
            self.oc, namespace, port=self.port, reporter=self.reporter, sleep=self._sleep
        )
        service = resolver.locate(preferred_name=f"{release}-estap-lb")
        self.reporter.detail(f"LB service: {service}")

        endpoint = resolver.wait_for_address(service, self.polling)
        wide = scoped.run(["get", "svc", service, "-o", "wide"], check=False)
        self.reporter.raw(wide.stdout)
        return endpoint
