"""Shared FastAPI dependencies for the dashboard API."""

from __future__ import annotations

from fastapi import Request

from crm_dashboard.config import AppSettings
from crm_dashboard.services.dashboard import DashboardService


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


__all__ = ["get_app_settings", "get_dashboard_service"]
