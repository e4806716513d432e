#!/usr/bin/env python3
"""
stapdemo viewer - Main Entry Point

This is the thin web layer that:
1. Loads configuration
2. Builds the application context (connection pool, counters)
3. Serves the dashboard, the tables API and the liveness probe

All database access is in the viewer module.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from stapdemo import __version__
from stapdemo.config import ConfigProvider, EnvConfigProvider
from stapdemo.logging_config import get_logging_config
from stapdemo.modules.viewer import TableRow, ViewerContext, render_dashboard

logger = logging.getLogger(__name__)


def _flag(value: str) -> bool:
    return str(value or "false").lower() == "true"


def get_context(request: Request) -> ViewerContext:
    return request.app.state.context


def create_app(
    context: Optional[ViewerContext] = None,
    config_provider: Optional[ConfigProvider] = None,
) -> FastAPI:
    """
    Build the viewer application.

    Args:
        context: pre-built context (tests); built from configuration at
            startup when omitted
        config_provider: configuration source, environment by default
    """
    provider = config_provider or EnvConfigProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = context is None
        ctx = context or ViewerContext.build(provider.get_pg_config(), provider.get_viewer_config())
        app.state.context = ctx
        logger.info(f"Target DSN (masked): {ctx.pg.dsn(masked=True)}")
        if owned:
            ctx.check_connection()

        yield

        logger.info("Shutting down viewer...")
        if owned:
            ctx.close()

    app = FastAPI(
        title="stapdemo viewer",
        description="PostgreSQL viewer connecting through the E-STAP proxy",
        version=__version__,
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz():
        """Liveness probe."""
        return "OK"

    @app.get("/api/tables", response_model=List[TableRow])
    def list_tables(
        system: str = Query("false", description="Include pg_catalog and information_schema"),
        ctx: ViewerContext = Depends(get_context),
    ):
        """
        Base tables visible to the connected user.

        Returns:
            200: [{table_schema, table_name}, ...]
            500: {"error": ...}
        """
        try:
            return ctx.database.list_tables(_flag(system))
        except SQLAlchemyError as e:
            logger.error(f"Table listing failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

    @app.get("/", response_class=HTMLResponse)
    def dashboard(
        system: str = Query("false", description="Include system schemas"),
        ctx: ViewerContext = Depends(get_context),
    ):
        """Full HTML dashboard."""
        return HTMLResponse(render_dashboard(ctx, _flag(system)))

    return app


app = create_app()


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    viewer = EnvConfigProvider().get_viewer_config()
    uvicorn.run(
        "stapdemo.main:app",
        host=host or viewer.host,
        port=port or viewer.port,
        log_level=viewer.log_level.lower(),
        log_config=get_logging_config(viewer.log_level),
    )


if __name__ == "__main__":
    serve()
