"""Pydantic response schemas for the dashboard API."""

from .dashboard import (
    CredentialListResponse,
    CredentialSummarySchema,
    DashboardSummaryResponse,
    MetricDescriptorSchema,
    MetricValueSchema,
    SourceCountSchema,
    TrendPointSchema,
    TrendSeriesSchema,
)
from .rollout import HealthResponse, RolloutConfigResponse, RolloutTokenResponse

__all__ = [
    "CredentialListResponse",
    "CredentialSummarySchema",
    "DashboardSummaryResponse",
    "HealthResponse",
    "MetricDescriptorSchema",
    "MetricValueSchema",
    "RolloutConfigResponse",
    "RolloutTokenResponse",
    "SourceCountSchema",
    "TrendPointSchema",
    "TrendSeriesSchema",
]
