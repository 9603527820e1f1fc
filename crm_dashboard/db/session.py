"""Database engine construction."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from crm_dashboard.config import AppSettings


def build_engine(settings: AppSettings) -> AsyncEngine:
    """Create a pooled async engine from application settings."""

    url = settings.resolve_database_url()
    connect_args: dict[str, Any] = {}
    if url.drivername == "postgresql+asyncpg":
        # Day truncation in trend queries relies on a UTC session.
        connect_args["server_settings"] = {"timezone": "UTC"}
        ssl_mode = settings.ssl_mode()
        if ssl_mode:
            connect_args["ssl"] = ssl_mode
    return create_async_engine(url, echo=False, future=True, pool_pre_ping=True, connect_args=connect_args)


__all__ = ["build_engine"]
