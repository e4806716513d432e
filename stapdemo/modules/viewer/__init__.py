"""
Viewer Module - Black Box Interface

Purpose: Back the web viewer with a pooled Postgres connection
Interface: ViewerContext, PostgresGateway, render_dashboard()
Hidden: SQL text, pool sizing, template loading

Pages are rendered through autoescaping templates, never by string concatenation.
"""

from .context import TableSource, ViewerContext
from .gateway import PostgresGateway, build_engine
from .models import ErrorResponse, SessionInfo, TableRow
from .pages import get_template_environment, render_dashboard

__all__ = [
    "ErrorResponse",
    "PostgresGateway",
    "SessionInfo",
    "TableRow",
    "TableSource",
    "ViewerContext",
    "build_engine",
    "get_template_environment",
    "render_dashboard",
]
