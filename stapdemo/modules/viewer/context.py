import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from ...config import PGConnectionConfig, ViewerConfig
from .gateway import PostgresGateway, build_engine

logger = logging.getLogger(__name__)


class TableSource(Protocol):
    """What the viewer needs from the database."""

    def ping(self) -> None:
        ...

    def session_info(self) -> Dict[str, Any]:
        ...

    def list_tables(self, include_system: bool = False) -> List[Dict[str, str]]:
        ...

    def dispose(self) -> None:
        ...


@dataclass
class ViewerContext:
    """
    Application-owned state, constructed at startup and handed to every request.

    The connection pool lives inside `database` and is disposed with the context.
    """
    pg: PGConnectionConfig
    viewer: ViewerConfig
    database: TableSource
    boot_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _hits: int = field(default=0, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def build(cls, pg: PGConnectionConfig, viewer: ViewerConfig) -> "ViewerContext":
        return cls(pg=pg, viewer=viewer, database=PostgresGateway(build_engine(pg, viewer)))

    def record_hit(self) -> int:
        with self._lock:
            self._hits += 1
            return self._hits

    @property
    def hits(self) -> int:
        return self._hits

    def check_connection(self) -> Optional[str]:
        """Startup probe; returns the error message, or None when the database answered."""
        try:
            self.database.ping()
        except SQLAlchemyError as e:
            logger.error(f"[pg] initial connection FAILED: {e}")
            return str(e)
        logger.info("[pg] initial connection OK")
        return None

    def close(self) -> None:
        self.database.dispose()
