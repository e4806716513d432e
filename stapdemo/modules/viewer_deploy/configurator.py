import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ...config import DeployConfig, mask_password
from ...console import Reporter
from ...exceptions import CredentialResolutionError
from ..cluster import OcClient, require_dir
from ..credentials import DatabaseCredentials, read_credentials
from ..provision import EndpointHandle, EndpointResolver, ensure_namespace

logger = logging.getLogger(__name__)

ENV_KEYS = ("PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE")
INTERNAL_REGISTRY = "image-registry.openshift-image-registry.svc:5000"


@dataclass(frozen=True)
class ViewerDeployment:
    namespace: str
    app_name: str
    route_url: str
    endpoint: EndpointHandle
    credentials: DatabaseCredentials
    rolled_out: bool


def build_viewer_env(endpoint: EndpointHandle, credentials: DatabaseCredentials) -> Dict[str, str]:
    """
    The five environment values the viewer connects with.

    Raises:
        CredentialResolutionError: any credential is empty; nothing is
            written for a partially-resolved identity
    """
    missing = [
        key
        for key, value in (
            ("POSTGRES_USER", credentials.user),
            ("POSTGRES_DB", credentials.database),
            ("POSTGRES_PASSWORD", credentials.password),
        )
        if not value
    ]
    if missing:
        raise CredentialResolutionError("postgres", missing)
    return {
        "PGHOST": endpoint.host,
        "PGPORT": str(endpoint.port),
        "PGUSER": credentials.user,
        "PGPASSWORD": credentials.password,
        "PGDATABASE": credentials.database,
    }


def mask_env_listing(listing: str) -> str:
    """Keep only PG* lines of `oc set env --list` output, with the password masked."""
    lines = []
    for line in listing.splitlines():
        name, sep, value = line.partition("=")
        if name not in ENV_KEYS:
            continue
        if name == "PGPASSWORD":
            value = mask_password(value)
        lines.append(f"{name}{sep}{value}")
    return "\n".join(lines)


class ViewerDeployer:
    """
    Builds the viewer image and wires it to the E-STAP endpoint.

    Standing resources (ImageStream/BuildConfig, Service, Route) are created
    once and left untouched on re-runs; the image and env are refreshed.
    """

    def __init__(
        self,
        config: DeployConfig,
        oc: Optional[OcClient] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.config = config
        self.oc = oc or OcClient()
        self.reporter = reporter or Reporter()

    @property
    def app_name(self) -> str:
        return self.config.viewer_app_name

    def image_reference(self, namespace: str) -> str:
        return f"{INTERNAL_REGISTRY}/{namespace}/{self.app_name}:{self.config.viewer_image_tag}"

    def resolve_endpoint(self, namespace: str, release: Optional[str] = None) -> EndpointHandle:
        """Locate the LB service and read its address once; pending is only a warning."""
        self.reporter.step(
            f"Discovering E-STAP LoadBalancer service on port {self.config.target_port} in {namespace}"
        )
        resolver = EndpointResolver(
            self.oc, namespace, port=self.config.target_port, reporter=self.reporter
        )
        service = resolver.locate(preferred_name=f"{release}-estap-lb" if release else None)
        self.reporter.detail(f"LB service: {service}")
        host = resolver.current_address(service)
        if not host:
            self.reporter.warn(
                "LB external endpoint not ready yet; the app may fail until the LB is provisioned."
            )
        else:
            self.reporter.detail(f"LB endpoint: {host}:{self.config.target_port}")
        return EndpointHandle(service=service, host=host, port=self.config.target_port)

    def read_credentials(self, namespace: str) -> DatabaseCredentials:
        self.reporter.step(f"Reading DB credentials from deploy/postgres in {namespace}")
        credentials = read_credentials(self.oc, namespace, "postgres")
        self.reporter.detail(
            f"PGUSER={credentials.user}  PGDATABASE={credentials.database}  (password: <set>)"
        )
        return credentials

    def build_image(self, namespace: str, app_dir: Path) -> None:
        scoped = self.oc.in_namespace(namespace)
        self.reporter.step("Ensure ImageStream & BuildConfig exist")
        if not scoped.exists("is", self.app_name):
            scoped.run(["new-build", "--name", self.app_name, "--binary", "--strategy", "docker"])

        self.reporter.step(f"Start build from {app_dir}")
        scoped.run(
            ["start-build", self.app_name, f"--from-dir={app_dir}", "--wait", "--follow"],
            capture=False,
        )

    def ensure_deployment(self, namespace: str) -> None:
        scoped = self.oc.in_namespace(namespace)
        image = self.image_reference(namespace)
        if not scoped.exists("deploy", self.app_name):
            self.reporter.step("Create Deployment")
            scoped.run(["create", "deployment", self.app_name, f"--image={image}"])
        else:
            self.reporter.step("Update Deployment image")
            scoped.run(["set", "image", f"deploy/{self.app_name}", f"{self.app_name}={image}"])

    def ensure_service_and_route(self, namespace: str) -> None:
        scoped = self.oc.in_namespace(namespace)
        port = str(self.config.viewer_port)
        if not scoped.exists("svc", self.app_name):
            self.reporter.step("Create Service")
            scoped.run([
                "expose", "deploy", self.app_name,
                f"--port={port}", "--name", self.app_name,
                f"--target-port={port}", "--type=ClusterIP",
            ])
        if not scoped.exists("route", self.app_name):
            self.reporter.step("Create Route")
            scoped.run(["expose", "svc", self.app_name])

    def configure(
        self,
        namespace: str,
        endpoint: EndpointHandle,
        credentials: DatabaseCredentials,
    ) -> bool:
        """
        Inject the PG* environment and wait for the rollout.

        Returns:
            True when the rollout completed; a timeout is only a warning

        Raises:
            CredentialResolutionError: before any write, if credentials are partial
        """
        env = build_viewer_env(endpoint, credentials)
        scoped = self.oc.in_namespace(namespace)

        self.reporter.step(f"Set env on deploy/{self.app_name}")
        scoped.run(["set", "env", f"deploy/{self.app_name}"] + [f"{k}={v}" for k, v in env.items()])

        listing = scoped.run(["set", "env", f"deploy/{self.app_name}", "--list"], check=False)
        self.reporter.detail("Current env:")
        self.reporter.raw(mask_env_listing(listing.stdout))

        self.reporter.step("Wait for rollout")
        rolled_out = scoped.rollout_status(self.app_name, self.config.rollout_timeout)
        if not rolled_out:
            self.reporter.warn(
                f"deploy/{self.app_name} not rolled out after {self.config.rollout_timeout}s; "
                f"check with: oc -n {namespace} rollout status deploy/{self.app_name}"
            )
        return rolled_out

    def route_url(self, namespace: str) -> str:
        result = self.oc.in_namespace(namespace).run(
            ["get", "route", self.app_name, "-o", "jsonpath=http://{.spec.host}"], check=False
        )
        return result.stdout.strip() if result.ok else ""

    def deploy(self, namespace: str, app_dir: Path, release: Optional[str] = None) -> ViewerDeployment:
        """
        Full viewer deployment into one namespace.

        Endpoint and credentials are resolved before anything is mutated, so
        a resolution failure leaves the viewer deployment untouched.
        """
        app_dir = Path(app_dir)
        require_dir(app_dir, "app dir")

        self.reporter.step(f"Using namespace: {namespace}")
        ensure_namespace(self.oc, namespace, self.reporter)

        endpoint = self.resolve_endpoint(namespace, release)
        credentials = self.read_credentials(namespace)

        self.build_image(namespace, app_dir)
        self.ensure_deployment(namespace)
        self.ensure_service_and_route(namespace)
        rolled_out = self.configure(namespace, endpoint, credentials)

        route = self.route_url(namespace)
        self.reporter.success("Viewer ready:")
        self.reporter.detail(f"Route: {route or '<unknown>'}")
        self.reporter.detail(
            f"Will connect to {endpoint}, DB {credentials.database} as {credentials.user}"
        )
        return ViewerDeployment(
            namespace=namespace,
            app_name=self.app_name,
            route_url=route,
            endpoint=endpoint,
            credentials=credentials,
            rolled_out=rolled_out,
        )
