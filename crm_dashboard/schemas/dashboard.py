"""Pydantic schemas for credential listings and dashboard summaries."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CredentialSummarySchema(CamelModel):
    credential_id: str = Field(..., examples=["cred-1"])
    app_key: str | None = None
    last_seen_at: datetime | None = None


class CredentialListResponse(CamelModel):
    credentials: list[CredentialSummarySchema]


class MetricDescriptorSchema(CamelModel):
    key: str
    label: str


class MetricValueSchema(MetricDescriptorSchema):
    value: int


class TrendPointSchema(CamelModel):
    date: str = Field(..., examples=["2024-09-10"])
    value: int


class TrendSeriesSchema(CamelModel):
    key: str
    label: str
    data: list[TrendPointSchema]


class SourceCountSchema(CamelModel):
    table: str
    value: int


class DashboardSummaryResponse(CamelModel):
    credential_id: str
    range_days: int
    from_date: datetime
    to_date: datetime
    metrics: list[MetricValueSchema]
    available_metrics: list[MetricDescriptorSchema]
    trend: TrendSeriesSchema
    sources: list[SourceCountSchema]

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={
            "example": {
                "credentialId": "cred-1",
                "rangeDays": 7,
                "fromDate": "2024-09-03T12:00:00Z",
                "toDate": "2024-09-10T12:00:00Z",
                "metrics": [{"key": "contactsMade", "label": "Contacts Made", "value": 5}],
                "availableMetrics": [{"key": "contactsMade", "label": "Contacts Made"}],
                "trend": {
                    "key": "contactsMade",
                    "label": "Contacts Made",
                    "data": [{"date": "2024-09-10", "value": 5}],
                },
                "sources": [{"table": "rollout_calls", "value": 3}],
            }
        },
    )


__all__ = [
    "CredentialListResponse",
    "CredentialSummarySchema",
    "DashboardSummaryResponse",
    "MetricDescriptorSchema",
    "MetricValueSchema",
    "SourceCountSchema",
    "TrendPointSchema",
    "TrendSeriesSchema",
]
