"""Rollout integration endpoints: client config and signed tokens."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from crm_dashboard.api.dependencies import get_app_settings, get_dashboard_service
from crm_dashboard.config import AppSettings
from crm_dashboard.schemas import RolloutConfigResponse, RolloutTokenResponse
from crm_dashboard.services.dashboard import DashboardService
from crm_dashboard.services.tokens import TokenConfigurationError, create_rollout_token

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/config", response_model=RolloutConfigResponse)
async def get_client_config(
    settings: AppSettings = Depends(get_app_settings),
    service: DashboardService = Depends(get_dashboard_service),
) -> RolloutConfigResponse:
    app_key = settings.rollout_app_key
    if not app_key:
        try:
            credentials = await service.compute_credential_list()
        except SQLAlchemyError as exc:
            logger.exception("Failed to resolve fallback app key")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to load credentials",
            ) from exc
        app_key = next((item.app_key for item in credentials if item.app_key), "")
    return RolloutConfigResponse(
        rollout_api_base_url=settings.rollout_api_base_url,
        rollout_app_key=app_key,
        default_user_id=settings.rollout_user_id,
    )


@router.get("/rollout/token", response_model=RolloutTokenResponse)
async def issue_rollout_token(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    settings: AppSettings = Depends(get_app_settings),
) -> RolloutTokenResponse:
    try:
        token = create_rollout_token(settings, user_id)
    except TokenConfigurationError as exc:
        logger.error("Cannot issue Rollout token: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return RolloutTokenResponse(token=token)


__all__ = ["get_client_config", "issue_rollout_token"]
