"""
Provision Module - Black Box Interface

Purpose: Stand up one demo bank (namespace, Postgres, E-STAP) per namespace
Interface: ensure(), install_and_wait(), EstapInstaller, EndpointResolver, BankProvisioner
Hidden: oc/helm invocation order, service scanning, address polling
"""

from .endpoint import (
    EndpointResolver,
    ingress_address,
    recheck_command,
    select_load_balancer_service,
)
from .estap import EstapInstaller
from .models import (
    DEFAULT_BANKS,
    BankResult,
    BankSpec,
    EndpointHandle,
    Namespace,
    ReadyDeployment,
    ServiceIdentity,
    ServiceRecord,
)
from .namespace import ensure, ensure_identity, ensure_namespace, grant_anyuid
from .pipeline import BankProvisioner
from .postgres import POSTGRES_DEPLOYMENT, install_and_wait

__all__ = [
    "DEFAULT_BANKS",
    "POSTGRES_DEPLOYMENT",
    "BankProvisioner",
    "BankResult",
    "BankSpec",
    "EndpointHandle",
    "EndpointResolver",
    "EstapInstaller",
    "Namespace",
    "ReadyDeployment",
    "ServiceIdentity",
    "ServiceRecord",
    "ensure",
    "ensure_identity",
    "ensure_namespace",
    "grant_anyuid",
    "ingress_address",
    "install_and_wait",
    "recheck_command",
    "select_load_balancer_service",
]
