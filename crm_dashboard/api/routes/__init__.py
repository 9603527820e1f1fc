"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .credentials import router as credentials_router
from .dashboard import router as dashboard_router
from .rollout import router as rollout_router

api_router = APIRouter()
api_router.include_router(credentials_router, prefix="/credentials", tags=["credentials"])
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(rollout_router, tags=["rollout"])

__all__ = ["api_router"]
