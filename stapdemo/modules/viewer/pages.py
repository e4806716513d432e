import logging
from typing import Any, Dict, List

from jinja2 import Environment, PackageLoader, select_autoescape
from sqlalchemy.exc import SQLAlchemyError

from .context import ViewerContext
from .models import SessionInfo, TableRow

logger = logging.getLogger(__name__)

_environment = Environment(
    loader=PackageLoader("stapdemo", "templates"),
    autoescape=select_autoescape(["html"]),
)


def get_template_environment() -> Environment:
    return _environment


def _session_info(raw: Dict[str, Any]) -> SessionInfo:
    return SessionInfo(**{k: (None if v is None else str(v)) for k, v in raw.items() if k in SessionInfo.model_fields})


def render_dashboard(context: ViewerContext, include_system: bool = False) -> str:
    """
    Render the dashboard page.

    Each query failure is shown on the page instead of failing the request.
    """
    hits = context.record_hit()

    ok = True
    error_message = ""
    info = SessionInfo()
    try:
        info = _session_info(context.database.session_info())
    except SQLAlchemyError as e:
        ok = False
        error_message = str(e)
        logger.warning(f"Session info query failed: {e}")

    try:
        tables: List[TableRow] = [TableRow(**row) for row in context.database.list_tables(include_system)]
    except SQLAlchemyError as e:
        tables = [TableRow(table_schema="ERROR", table_name=str(e))]

    template = _environment.get_template("index.html")
    return template.render(
        title=context.viewer.title,
        ok=ok,
        error_message=error_message,
        pg=context.pg,
        dsn_masked=context.pg.dsn(masked=True),
        dsn_raw=context.pg.dsn(masked=False),
        boot_time=context.boot_time.isoformat(),
        info=info,
        hits=hits,
        include_system=include_system,
        tables=tables,
    )
