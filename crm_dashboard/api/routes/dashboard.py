"""Dashboard summary endpoint."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from crm_dashboard.api.dependencies import get_dashboard_service
from crm_dashboard.schemas import DashboardSummaryResponse
from crm_dashboard.services.dashboard import DashboardService, InvalidDashboardRequest
from crm_dashboard.services.metrics import DEFAULT_METRIC_KEY
from crm_dashboard.services.trend import DEFAULT_RANGE_DAYS

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/summary", response_model=DashboardSummaryResponse)
async def get_dashboard_summary(
    credential_id: Optional[str] = Query(default=None, alias="credentialId"),
    range_days: Optional[str] = Query(default=None, alias="rangeDays"),
    metric: Optional[str] = Query(default=None),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardSummaryResponse:
    logger.info("Dashboard summary for %s (metric=%s, rangeDays=%s)", credential_id, metric, range_days)
    try:
        summary = await service.get_dashboard_summary(
            credential_id,
            metric_key=metric or DEFAULT_METRIC_KEY,
            range_days=range_days or DEFAULT_RANGE_DAYS,
        )
    except InvalidDashboardRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Dashboard aggregation failed for %s", credential_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load dashboard data",
        ) from exc
    return DashboardSummaryResponse.model_validate(asdict(summary))


__all__ = ["get_dashboard_summary"]
