"""FastAPI application factory and settings wiring for a scope tree."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from statscope.agent.interfaces import StatsReporter
from statscope.agent.scope import Scope, ScopeOptions, new_root_scope
from statscope.config import Settings, get_settings
from statscope.inspect import router as inspect_router
from statscope.lib.logger import configure_logging


def new_root_scope_from_settings(
    settings: Settings | None = None,
    reporter: StatsReporter | None = None,
) -> Scope:
    """Build a root scope from environment-backed settings."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    return new_root_scope(ScopeOptions.from_settings(settings, reporter), settings.report_interval)


def create_app(scope: Scope, *, close_on_shutdown: bool = True) -> FastAPI:
    """Return an app exposing ``scope`` under ``/metrics``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if close_on_shutdown:
            scope.close()

    app = FastAPI(title="statscope", version="0.1.0", lifespan=lifespan)
    app.state.scope = scope
    app.include_router(inspect_router, prefix="/metrics", tags=["metrics"])

    @app.get("/health", tags=["system"], summary="Health check")
    async def health_check() -> JSONResponse:
        """Return liveness response including report loop state."""

        payload = {"ok": True, "data": {"status": "healthy", "report_loop": scope.loop.state.value}}
        return JSONResponse(content=payload)

    return app
