import logging
from typing import Any, Dict, List

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from ...config import PGConnectionConfig, ViewerConfig

logger = logging.getLogger(__name__)

TABLE_LIMIT = 2000

SESSION_INFO_SQL = text(
    "SELECT current_database() AS current_database, "
    "inet_server_addr()::text AS server_ip, "
    "inet_client_addr()::text AS client_ip, "
    "now() AS now, version() AS version"
)

_TABLES_SQL = (
    "SELECT table_schema, table_name "
    "FROM information_schema.tables "
    "WHERE table_type = 'BASE TABLE' "
    "{system_filter}"
    "ORDER BY table_schema, table_name LIMIT {limit}"
)
TABLES_SQL = text(_TABLES_SQL.format(
    system_filter="AND table_schema NOT IN ('pg_catalog', 'information_schema') ",
    limit=TABLE_LIMIT,
))
ALL_TABLES_SQL = text(_TABLES_SQL.format(system_filter="", limit=TABLE_LIMIT))


def build_engine(pg: PGConnectionConfig, viewer: ViewerConfig) -> Engine:
    """
    Pooled engine for the viewer's pass-through queries.

    pool_recycle caps a connection's total age: on checkout, one older than
    the configured seconds is closed and reopened. SQLAlchemy has no idle
    timeout for QueuePool.
    """
    return create_engine(
        pg.sqlalchemy_url(),
        future=True,
        pool_size=viewer.pool_size,
        max_overflow=0,
        pool_recycle=viewer.pool_recycle,
        pool_pre_ping=True,
        connect_args={"sslmode": "disable"},
    )


class PostgresGateway:
    """Direct pass-through queries; no caching."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def session_info(self) -> Dict[str, Any]:
        with self.engine.connect() as conn:
            row = conn.execute(SESSION_INFO_SQL).mappings().first()
        return dict(row) if row else {}

    def list_tables(self, include_system: bool = False) -> List[Dict[str, str]]:
        sql = ALL_TABLES_SQL if include_system else TABLES_SQL
        with self.engine.connect() as conn:
            rows = conn.execute(sql).mappings().all()
        return [{"table_schema": r["table_schema"], "table_name": r["table_name"]} for r in rows]

    def dispose(self) -> None:
        self.engine.dispose()
