"""Pydantic schemas for service health and Rollout integration endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class HealthResponse(BaseModel):
    ok: bool
    at: datetime


class RolloutConfigResponse(BaseModel):
    rollout_api_base_url: str
    rollout_app_key: str
    default_user_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RolloutTokenResponse(BaseModel):
    token: str


__all__ = ["HealthResponse", "RolloutConfigResponse", "RolloutTokenResponse"]
