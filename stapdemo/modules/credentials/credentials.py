import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ...config import mask_password
from ...exceptions import CredentialResolutionError, ResolutionError
from ..cluster import OcClient

logger = logging.getLogger(__name__)

USER_KEY = "POSTGRES_USER"
DATABASE_KEY = "POSTGRES_DB"
PASSWORD_KEY = "POSTGRES_PASSWORD"
REQUIRED_KEYS = (USER_KEY, DATABASE_KEY, PASSWORD_KEY)


@dataclass(frozen=True)
class DatabaseCredentials:
    user: str
    database: str
    password: str

    def __repr__(self) -> str:
        return (
            f"DatabaseCredentials(user={self.user!r}, database={self.database!r}, "
            f"password={mask_password(self.password)!r})"
        )


def _containers(manifest: Mapping[str, Any]) -> List[Dict[str, Any]]:
    template = (manifest.get("spec") or {}).get("template") or {}
    return (template.get("spec") or {}).get("containers") or []


def _env_mapping(entries: Sequence[Mapping[str, Any]]) -> Dict[str, str]:
    """name -> literal value; entries without a literal value map to ''."""
    mapping: Dict[str, str] = {}
    for entry in entries or []:
        name = entry.get("name")
        if name and name not in mapping:
            mapping[name] = entry.get("value") or ""
    return mapping


def first_container_env(manifest: Mapping[str, Any]) -> Dict[str, str]:
    """Direct projection of the first container's env list by name."""
    containers = _containers(manifest)
    if not containers:
        return {}
    return _env_mapping(containers[0].get("env") or [])


def all_containers_env(manifest: Mapping[str, Any]) -> Dict[str, str]:
    """Full scan of every container's env list, matching on the name field."""
    mapping: Dict[str, str] = {}
    for container in _containers(manifest):
        for name, value in _env_mapping(container.get("env") or []).items():
            if not mapping.get(name):
                mapping[name] = value
    return mapping


# Tried in order; the first non-empty value wins per key
LOOKUP_STRATEGIES: Tuple[Callable[[Mapping[str, Any]], Dict[str, str]], ...] = (
    first_container_env,
    all_containers_env,
)


def resolve_values(
    manifest: Mapping[str, Any],
    keys: Sequence[str] = REQUIRED_KEYS,
    strategies: Sequence[Callable[[Mapping[str, Any]], Dict[str, str]]] = LOOKUP_STRATEGIES,
) -> Dict[str, str]:
    """Resolve each key through the strategies; unresolved keys map to ''."""
    resolved = {key: "" for key in keys}
    for strategy in strategies:
        pending = [key for key in keys if not resolved[key]]
        if not pending:
            break
        values = strategy(manifest)
        for key in pending:
            resolved[key] = values.get(key, "")
    return resolved


def extract_credentials(
    manifest: Mapping[str, Any],
    deployment: str = "postgres",
) -> DatabaseCredentials:
    """
    Extract database credentials from a Deployment manifest.

    Partial credentials are never returned.

    Raises:
        CredentialResolutionError: any of user/database/password is empty
            after every lookup strategy
    """
    values = resolve_values(manifest)
    missing = [key for key in REQUIRED_KEYS if not values[key]]
    if missing:
        raise CredentialResolutionError(deployment, missing)
    return DatabaseCredentials(
        user=values[USER_KEY],
        database=values[DATABASE_KEY],
        password=values[PASSWORD_KEY],
    )


def read_credentials(
    oc: OcClient,
    namespace: str,
    deployment: str = "postgres",
) -> DatabaseCredentials:
    """
    Read credentials from a live deployment's pod template.

    The deployment is fetched once; fallbacks run over that single snapshot.

    Raises:
        ResolutionError: the deployment does not exist
        CredentialResolutionError: credentials incomplete
    """
    manifest: Optional[Dict[str, Any]] = oc.in_namespace(namespace).try_get_json("deploy", deployment)
    if manifest is None:
        raise ResolutionError(f"deploy/{deployment} not found in {namespace}")
    credentials = extract_credentials(manifest, deployment)
    logger.info(f"Resolved credentials from deploy/{deployment} in {namespace}: {credentials!r}")
    return credentials
