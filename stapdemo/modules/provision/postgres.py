import logging
from pathlib import Path
from typing import Optional

from ...console import Reporter
from ...exceptions import RolloutTimeoutError
from ..cluster import OcClient, require_file
from .models import ReadyDeployment

logger = logging.getLogger(__name__)

POSTGRES_DEPLOYMENT = "postgres"


def install_and_wait(
    oc: OcClient,
    namespace: str,
    manifest_path: Path,
    timeout: int = 300,
    reporter: Optional[Reporter] = None,
) -> ReadyDeployment:
    """
    Apply the Postgres manifest and block until deploy/postgres is rolled out.

    Args:
        oc: oc adapter
        namespace: target namespace
        manifest_path: declarative manifest, safe to re-apply
        timeout: rollout timeout in seconds

    Returns:
        ReadyDeployment for deploy/postgres

    Raises:
        PreconditionError: manifest missing
        RolloutTimeoutError: the database never became ready; downstream
            stages cannot run, so there is no retry
    """
    reporter = reporter or Reporter()
    reporter.step(f"Apply Postgres: {manifest_path}")
    require_file(manifest_path)

    scoped = oc.in_namespace(namespace)
    applied = scoped.run(["apply", "-f", str(manifest_path)])
    reporter.raw(applied.stdout)

    reporter.step(f"Wait for deploy/{POSTGRES_DEPLOYMENT}")
    if not scoped.rollout_status(POSTGRES_DEPLOYMENT, timeout):
        raise RolloutTimeoutError(namespace, POSTGRES_DEPLOYMENT, timeout)

    svc = scoped.run(["get", "svc", POSTGRES_DEPLOYMENT, "-o", "wide"], check=False)
    reporter.raw(svc.stdout)
    logger.info(f"deploy/{POSTGRES_DEPLOYMENT} ready in {namespace}")
    return ReadyDeployment(namespace=namespace, name=POSTGRES_DEPLOYMENT)
