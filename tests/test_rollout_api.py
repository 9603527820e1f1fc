"""Rollout token and client config endpoint tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from conftest import CALLS, activity
from crm_dashboard.config import AppSettings
from crm_dashboard.main import create_app
from crm_dashboard.services.tokens import TokenConfigurationError, create_rollout_token

SECRET = "s3cret-for-tests"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "ROLLOUT_APP_KEY",
        "ROLLOUT_USER_ID",
        "ROLLOUT_CLIENT_SECRET",
        "ROLLOUT_PROJECT_KEY",
        "ROLLOUT_CLIENT_ID",
        "ROLLOUT_API_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


def _settings(**overrides) -> AppSettings:
    return AppSettings(_env_file=None, **overrides)


@asynccontextmanager
async def _client(engine, settings: AppSettings):
    app = create_app(engine=engine, settings=settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def test_create_rollout_token_claims():
    settings = _settings(rollout_client_secret=SECRET, rollout_project_key="proj-1")
    issued = datetime(2024, 9, 10, 12, 0, tzinfo=timezone.utc)
    token = create_rollout_token(settings, "agent-7", now=issued)

    assert jwt.get_unverified_header(token)["alg"] == "HS512"
    claims = jwt.decode(token, SECRET, algorithms=["HS512"], options={"verify_exp": False})
    assert claims["iss"] == "proj-1"
    assert claims["sub"] == "agent-7"
    assert claims["exp"] - claims["iat"] == 3600


def test_create_rollout_token_falls_back_to_client_id_and_default_user():
    settings = _settings(rollout_client_secret=SECRET, rollout_client_id="client-9", rollout_user_id="owner")
    claims = jwt.get_unverified_claims(create_rollout_token(settings, "  "))
    assert claims["iss"] == "client-9"
    assert claims["sub"] == "owner"


def test_create_rollout_token_requires_secret():
    with pytest.raises(TokenConfigurationError, match="ROLLOUT_CLIENT_SECRET is required"):
        create_rollout_token(_settings(rollout_project_key="proj-1"))
    with pytest.raises(TokenConfigurationError, match="ROLLOUT_PROJECT_KEY or ROLLOUT_CLIENT_ID is required"):
        create_rollout_token(_settings(rollout_client_secret=SECRET))


async def test_token_endpoint(engine):
    settings = _settings(rollout_client_secret=SECRET, rollout_project_key="proj-1")
    async with _client(engine, settings) as client:
        response = await client.get("/api/rollout/token", params={"userId": "agent-7"})

    assert response.status_code == 200
    claims = jwt.decode(response.json()["token"], SECRET, algorithms=["HS512"])
    assert claims["sub"] == "agent-7"


async def test_token_endpoint_without_secret_is_server_error(engine):
    async with _client(engine, _settings()) as client:
        response = await client.get("/api/rollout/token")

    assert response.status_code == 500
    assert response.json() == {"detail": "ROLLOUT_CLIENT_SECRET is required"}


async def test_config_uses_explicit_app_key(engine):
    settings = _settings(rollout_app_key="configured", rollout_api_base_url="http://localhost:3300/api")
    async with _client(engine, settings) as client:
        response = await client.get("/api/config")

    assert response.json() == {
        "rolloutApiBaseUrl": "http://localhost:3300/api",
        "rolloutAppKey": "configured",
        "defaultUserId": "user123",
    }


async def test_config_falls_back_to_synced_app_key(engine, store):
    now = datetime.now(timezone.utc)
    await store.create(CALLS)
    await store.insert(
        CALLS,
        [
            activity("cred-1", now, appKey=None, updated=now),
            activity("cred-2", now, appKey="follow-up-boss", updated=now),
        ],
    )
    async with _client(engine, _settings()) as client:
        response = await client.get("/api/config")

    assert response.status_code == 200
    assert response.json()["rolloutAppKey"] == "follow-up-boss"
