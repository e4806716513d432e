"""
Endpoint resolution for the E-STAP load balancer.

Load-balancer provisioning is asynchronous and outside our control, so
locating the service is strict (fatal when nothing matches) while waiting
for its address is lenient (warn and return an empty host).
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

from ...config import TARGET_PORT, PollingConfig
from ...console import Reporter
from ...exceptions import ServiceNotFoundError
from ..cluster import OcClient
from .models import EndpointHandle, ServiceRecord

logger = logging.getLogger(__name__)


def select_load_balancer_service(
    manifests: Iterable[Dict[str, Any]],
    port: int = TARGET_PORT,
) -> Optional[ServiceRecord]:
    """First service of type LoadBalancer whose ports include `port`."""
    for manifest in manifests:
        record = ServiceRecord.from_manifest(manifest)
        if record.is_load_balancer_on(port):
            return record
    return None


def ingress_address(manifest: Optional[Dict[str, Any]]) -> str:
    """Hostname of the first ingress entry, falling back to its IP; empty while pending."""
    if not manifest:
        return ""
    ingress = ((manifest.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    if not ingress:
        return ""
    first = ingress[0] or {}
    return first.get("hostname") or first.get("ip") or ""


def recheck_command(namespace: str, service: str) -> str:
    """The command an operator can run later to see whether the address arrived."""
    return (
        f"oc -n {namespace} get svc {service} -o jsonpath="
        "'{.status.loadBalancer.ingress[0].hostname}{\"\\n\"}{.status.loadBalancer.ingress[0].ip}{\"\\n\"}'"
    )


class EndpointResolver:
    """Locates the load-balancer service in a namespace and resolves its address."""

    def __init__(
        self,
        oc: OcClient,
        namespace: str,
        port: int = TARGET_PORT,
        reporter: Optional[Reporter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.oc = oc.in_namespace(namespace)
        self.namespace = namespace
        self.port = port
        self.reporter = reporter or Reporter()
        self._sleep = sleep

    def locate(self, preferred_name: Optional[str] = None) -> str:
        """
        Find the load-balancer service name.

        The conventional name is tried first; if it does not exist every
        service in the namespace is scanned.

        Raises:
            ServiceNotFoundError: neither strategy found a match
        """
        if preferred_name and self.oc.exists("svc", preferred_name):
            logger.debug(f"Found {preferred_name} by exact name")
            return preferred_name

        services = self.oc.get_json("svc").get("items") or []
        record = select_load_balancer_service(services, self.port)
        if record is None:
            listing = self.oc.run(["get", "svc"], check=False)
            self.reporter.raw(listing.stdout)
            raise ServiceNotFoundError(self.namespace, self.port)
        logger.debug(f"Found {record.name} by scanning {len(services)} services")
        return record.name

    def current_address(self, service: str) -> str:
        return ingress_address(self.oc.try_get_json("svc", service))

    def wait_for_address(self, service: str, polling: PollingConfig) -> EndpointHandle:
        """
        Poll the service until its ingress reports a hostname or IP.

        Never raises on exhaustion: an empty host is returned together with a
        warning and the manual recheck command.
        """
        self.reporter.console.print("==> Waiting for external endpoint", end="")
        host = ""
        for attempt in range(polling.attempts):
            host = self.current_address(service)
            if host:
                break
            self.reporter.progress_tick()
            if attempt < polling.attempts - 1:
                self._sleep(polling.interval)
        self.reporter.progress_end()

        if not host:
            self.reporter.warn("LB not ready yet. Check later:")
            self.reporter.detail(recheck_command(self.namespace, service))
        else:
            self.reporter.detail(f"External endpoint: {host}:{self.port}")
        return EndpointHandle(service=service, host=host, port=self.port)
