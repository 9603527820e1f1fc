"""Credential listing endpoint."""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from crm_dashboard.api.dependencies import get_dashboard_service
from crm_dashboard.schemas import CredentialListResponse, CredentialSummarySchema
from crm_dashboard.services.dashboard import DashboardService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=CredentialListResponse)
async def list_credentials(service: DashboardService = Depends(get_dashboard_service)) -> CredentialListResponse:
    try:
        credentials = await service.compute_credential_list()
    except SQLAlchemyError as exc:
        logger.exception("Failed to list credentials")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load credentials",
        ) from exc
    logger.debug("Returning %d credentials", len(credentials))
    return CredentialListResponse(
        credentials=[CredentialSummarySchema.model_validate(asdict(item)) for item in credentials]
    )


__all__ = ["list_credentials"]
