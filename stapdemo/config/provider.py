"""Configuration provider resolved once at process start."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Protocol
from urllib.parse import quote

from ..exceptions import ConfigError

TARGET_PORT = 8888


def mask_password(password: Optional[str]) -> str:
    """Mask a password, keeping only its first and last character."""
    if not password:
        return ""
    if len(password) <= 2:
        return "*" * len(password)
    return password[0] + "*" * max(2, len(password) - 2) + password[-1]


@dataclass(frozen=True)
class PGConnectionConfig:
    """Postgres connection target as injected into the viewer deployment."""
    host: str
    port: int
    user: str
    password: str
    database: str

    def dsn(self, masked: bool = True) -> str:
        """Build a postgresql:// connection string."""
        secret = mask_password(self.password) if masked else quote(self.password, safe="")
        return (
            f"postgresql://{quote(self.user, safe='')}:{secret}"
            f"@{self.host}:{self.port}/{quote(self.database, safe='')}"
        )

    def sqlalchemy_url(self) -> str:
        """Connection URL for SQLAlchemy using the psycopg driver."""
        return "postgresql+psycopg://" + self.dsn(masked=False)[len("postgresql://"):]

    def __repr__(self) -> str:
        return (
            f"PGConnectionConfig(host={self.host!r}, port={self.port}, user={self.user!r}, "
            f"password={mask_password(self.password)!r}, database={self.database!r})"
        )


@dataclass(frozen=True)
class ViewerConfig:
    """Viewer web server configuration."""
    host: str
    port: int
    title: str
    pool_size: int
    pool_recycle: int
    log_level: str


@dataclass(frozen=True)
class PollingConfig:
    """Fixed-count polling used while waiting for a load-balancer address."""
    attempts: int = 60
    interval: float = 3.0

    def __post_init__(self):
        if self.attempts < 1 or self.interval < 0:
            raise ConfigError(
                f"load-balancer polling needs at least one attempt and a non-negative interval, "
                f"got attempts={self.attempts} interval={self.interval}"
            )

    @property
    def budget_seconds(self) -> float:
        return self.attempts * self.interval


@dataclass(frozen=True)
class DeployConfig:
    """Deployment workflow configuration."""
    workdir: Path
    chart_dir: Path
    rollout_timeout: int = 300
    target_port: int = TARGET_PORT
    viewer_app_name: str = "pg-viewer-single"
    viewer_port: int = 8080
    viewer_image_tag: str = "latest"
    polling: PollingConfig = field(default_factory=PollingConfig)

    def postgres_manifest(self, namespace: str) -> Path:
        return self.workdir / f"Postgres-{namespace}" / "postgres.yaml"

    def values_file(self, namespace: str) -> Path:
        return self.chart_dir.parent / f"{namespace}.yaml"


@dataclass(frozen=True)
class SecurityGroupConfig:
    """AWS collector security group configuration."""
    region: str
    vpc_id: Optional[str]
    group_name: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_pg_config(self) -> PGConnectionConfig:
        """Get the Postgres connection target."""
        ...

    def get_viewer_config(self) -> ViewerConfig:
        """Get viewer server configuration."""
        ...

    def get_deploy_config(self) -> DeployConfig:
        """Get deployment workflow configuration."""
        ...

    def get_security_group_config(self) -> SecurityGroupConfig:
        """Get AWS security group configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._env = os.environ if environ is None else environ

    def _get(self, name: str, default: str = "") -> str:
        value = self._env.get(name)
        return default if value is None or value == "" else value

    def _int(self, name: str, default: int) -> int:
        raw = self._get(name, str(default))
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from None

    def _float(self, name: str, default: float) -> float:
        raw = self._get(name, str(default))
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from None

    def get_pg_config(self) -> PGConnectionConfig:
        """Get the Postgres connection target from PG* variables."""
        return PGConnectionConfig(
            host=self._get("PGHOST", "localhost"),
            port=self._int("PGPORT", TARGET_PORT),
            user=self._get("PGUSER", "postgres"),
            password=self._env.get("PGPASSWORD", ""),
            database=self._get("PGDATABASE", "postgres"),
        )

    def get_viewer_config(self) -> ViewerConfig:
        """Get viewer server configuration from environment variables."""
        return ViewerConfig(
            host=self._get("VIEWER_HOST", "0.0.0.0"),
            port=self._int("PORT", 8080),
            title=self._get("APP_TITLE", "PostgreSQL Viewer (via E-STAP @ 8888)"),
            pool_size=self._int("PG_POOL_SIZE", 5),
            pool_recycle=self._int("PG_POOL_RECYCLE", 10),
            log_level=self._get("LOG_LEVEL", "INFO"),
        )

    def get_polling_config(self) -> PollingConfig:
        """Get load-balancer polling from STAPDEMO_LB_POLL_* variables."""
        attempts = self._int("STAPDEMO_LB_POLL_ATTEMPTS", 60)
        interval = self._float("STAPDEMO_LB_POLL_INTERVAL", 3.0)
        return PollingConfig(attempts=attempts, interval=interval)

    def get_deploy_config(self) -> DeployConfig:
        """Get deployment workflow configuration from environment variables."""
        workdir = Path(self._get("STAPDEMO_WORKDIR", os.getcwd()))
        chart_dir = Path(self._get("STAPDEMO_CHART_DIR", "Guardium_External_S-TAP/charts/estap"))
        if not chart_dir.is_absolute():
            chart_dir = workdir / chart_dir
        return DeployConfig(
            workdir=workdir,
            chart_dir=chart_dir,
            rollout_timeout=self._int("STAPDEMO_ROLLOUT_TIMEOUT", 300),
            polling=self.get_polling_config(),
        )

    def get_security_group_config(self) -> SecurityGroupConfig:
        """Get AWS security group configuration from environment variables."""
        return SecurityGroupConfig(
            region=self._get("AWS_REGION", "ap-southeast-2"),
            vpc_id=self._env.get("STAPDEMO_VPC_ID") or None,
            group_name=self._get("STAPDEMO_SG_NAME", "GuardiumCollectorSG"),
        )
