"""
Handles for the external resources the provisioning workflow creates.

These are not in-process objects with their own lifecycle; each one names
a resource that lives in the cluster's resource store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...config import TARGET_PORT

LOAD_BALANCER = "LoadBalancer"


@dataclass(frozen=True)
class Namespace:
    name: str


@dataclass(frozen=True)
class ServiceIdentity:
    namespace: str
    name: str


@dataclass(frozen=True)
class ReadyDeployment:
    namespace: str
    name: str


@dataclass(frozen=True)
class ServiceRecord:
    """The parts of a Service manifest the endpoint resolver looks at."""
    name: str
    type: str
    ports: List[int] = field(default_factory=list)

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "ServiceRecord":
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        ports = []
        for entry in spec.get("ports") or []:
            port = entry.get("port")
            if port is not None:
                ports.append(int(port))
        return cls(name=metadata.get("name", ""), type=spec.get("type", ""), ports=ports)

    def is_load_balancer_on(self, port: int) -> bool:
        return self.type == LOAD_BALANCER and port in self.ports


@dataclass(frozen=True)
class EndpointHandle:
    """Externally reachable address of the E-STAP load balancer; host is empty while pending."""
    service: str
    host: str = ""
    port: int = TARGET_PORT

    @property
    def ready(self) -> bool:
        return bool(self.host)

    def __str__(self) -> str:
        return f"{self.host or '<pending>'}:{self.port}"


@dataclass(frozen=True)
class BankSpec:
    """One independent demo environment."""
    namespace: str
    service_account: str
    release: str

    @property
    def deployment(self) -> str:
        return f"{self.release}-estap"

    @property
    def service(self) -> str:
        return f"{self.release}-estap-lb"


@dataclass
class BankResult:
    spec: BankSpec
    endpoint: Optional[EndpointHandle] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


DEFAULT_BANKS = (
    BankSpec(namespace="bank-test1", service_account="estap", release="estap-bank1"),
    BankSpec(namespace="bank-test2", service_account="estap", release="estap-bank2"),
)
