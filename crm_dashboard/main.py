"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.trace.export import SpanExporter
from sqlalchemy.ext.asyncio import AsyncEngine

from crm_dashboard import __version__
from crm_dashboard.api.routes import api_router
from crm_dashboard.config import AppSettings, get_settings
from crm_dashboard.core.logging import setup_logging
from crm_dashboard.core.telemetry import setup_telemetry
from crm_dashboard.db.session import build_engine
from crm_dashboard.schemas import HealthResponse
from crm_dashboard.services.dashboard import DashboardService

logger = logging.getLogger(__name__)


def create_app(
    engine: AsyncEngine | None = None,
    settings: AppSettings | None = None,
    *,
    span_exporter: SpanExporter | None = None,
    metric_reader: MetricReader | None = None,
) -> FastAPI:
    """Build the API around ``engine``; the engine is disposed on shutdown only if built here.

    ``span_exporter`` and ``metric_reader`` replace the OTLP exporters when
    telemetry is enabled.
    """

    settings = settings or get_settings()
    owns_engine = engine is None
    engine = engine or build_engine(settings)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        logger.info("Dashboard service configuration: %s", settings.dict_for_logging())
        yield
        if owns_engine:
            await engine.dispose()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=_lifespan)
    app.state.settings = settings
    telemetry = setup_telemetry(
        app, settings, engine=engine, span_exporter=span_exporter, metric_reader=metric_reader
    )
    app.state.dashboard_service = DashboardService.from_settings(
        engine,
        settings,
        tracer=telemetry.tracer() if telemetry else None,
        meter=telemetry.meter() if telemetry else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get(f"{settings.api_prefix}/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(ok=True, at=datetime.now(timezone.utc))

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


def get_app() -> FastAPI:
    """Factory for ``uvicorn --factory crm_dashboard.main:get_app``."""

    setup_logging()
    return create_app()


__all__ = ["create_app", "get_app"]
