"""Custom exceptions for stapdemo."""

from typing import List, Optional, Sequence


class StapDemoError(Exception):
    """Base exception for all stapdemo errors."""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class PreconditionError(StapDemoError):
    """Raised when a required tool, file or directory is missing."""
    pass


class ConfigError(StapDemoError):
    """Raised for configuration-related errors."""
    pass


class CommandError(StapDemoError):
    """Raised when an external command exits non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip() or "no output"
        super().__init__(f"'{' '.join(argv)}' failed with exit code {returncode}: {detail}")
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class ResolutionError(StapDemoError):
    """Raised when a required identifier cannot be found by any strategy."""
    pass


class ServiceNotFoundError(ResolutionError):
    """Raised when no load-balancer service exposes the target port."""

    def __init__(self, namespace: str, port: int) -> None:
        super().__init__(f"no LoadBalancer service on port {port} found in {namespace}")
        self.namespace = namespace
        self.port = port


class CredentialResolutionError(ResolutionError):
    """Raised when any database credential is still empty after every lookup."""

    def __init__(self, deployment: str, missing: List[str]) -> None:
        super().__init__(
            f"Failed to read DB env (user/db/password) from deploy/{deployment}: "
            f"missing {', '.join(missing)}"
        )
        self.deployment = deployment
        self.missing = missing


class RolloutTimeoutError(StapDemoError):
    """Raised when a rollout that downstream stages depend on does not complete."""

    def __init__(self, namespace: str, deployment: str, timeout: int) -> None:
        super().__init__(
            f"deploy/{deployment} in {namespace} did not roll out within {timeout}s"
        )
        self.namespace = namespace
        self.deployment = deployment
        self.timeout = timeout
