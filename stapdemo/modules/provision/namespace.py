import logging
from typing import Optional

from ...console import Reporter
from ..cluster import OcClient
from .models import Namespace, ServiceIdentity

logger = logging.getLogger(__name__)


def ensure_namespace(oc: OcClient, namespace: str, reporter: Optional[Reporter] = None) -> Namespace:
    """
    Create the project if missing, otherwise confirm it exists.

    Both outcomes are success; only failing to read the project afterwards
    is an error. The kubeconfig and its current project are never touched;
    every later call passes -n explicitly.
    """
    reporter = reporter or Reporter()
    reporter.step(f"Project: {namespace}")
    created = oc.cluster_scoped().try_run(["new-project", namespace, "--skip-config-write"])
    if created.ok:
        logger.info(f"Created project {namespace}")
    else:
        oc.cluster_scoped().run(["get", "project", namespace, "-o", "name"])
        logger.info(f"Reusing project {namespace}")
    return Namespace(name=namespace)


def ensure_identity(
    oc: OcClient,
    namespace: str,
    identity: str,
    reporter: Optional[Reporter] = None,
) -> ServiceIdentity:
    """Create the service account if missing and confirm it exists."""
    reporter = reporter or Reporter()
    scoped = oc.in_namespace(namespace)
    scoped.try_run(["create", "sa", identity])
    confirmed = scoped.run(["get", "sa", identity, "-o", "name"])
    reporter.detail(confirmed.stdout.strip() or f"serviceaccount/{identity}")
    return ServiceIdentity(namespace=namespace, name=identity)


def ensure(
    oc: OcClient,
    namespace: str,
    identity: str,
    reporter: Optional[Reporter] = None,
) -> Namespace:
    """
    Ensure the namespace and its service identity exist.

    No rollback: if the identity cannot be confirmed the namespace remains.
    """
    ns = ensure_namespace(oc, namespace, reporter)
    ensure_identity(oc, namespace, identity, reporter)
    return ns


def grant_anyuid(
    oc: OcClient,
    namespace: str,
    identity: str,
    reporter: Optional[Reporter] = None,
) -> None:
    """Grant the anyuid SCC to the service account. TEST ONLY, unsafe for production."""
    reporter = reporter or Reporter()
    reporter.step(f"Grant anyuid SCC to SA '{identity}' in {namespace} (TEST ONLY)")
    result = oc.in_namespace(namespace).try_run(
        ["adm", "policy", "add-scc-to-user", "anyuid", "-z", identity]
    )
    if not result.ok:
        logger.warning(f"anyuid grant for {identity} in {namespace} did not succeed; continuing")
