"""Signed tokens for the Rollout embedded credential widgets."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from crm_dashboard.config import AppSettings


class TokenConfigurationError(RuntimeError):
    """Raised when the secrets needed to sign a token are not configured."""


def _require(value: str | None, name: str) -> str:
    if not value:
        raise TokenConfigurationError(f"{name} is required")
    return value


def create_rollout_token(settings: AppSettings, user_id: str | None = None, *, now: datetime | None = None) -> str:
    """Issue a short-lived JWT with the project key as issuer and the user as subject."""

    secret = _require(settings.rollout_client_secret, "ROLLOUT_CLIENT_SECRET")
    issuer = _require(settings.rollout_issuer(), "ROLLOUT_PROJECT_KEY or ROLLOUT_CLIENT_ID")
    subject = (user_id or "").strip() or settings.rollout_user_id
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "iss": issuer,
        "sub": subject,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=settings.rollout_token_ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=settings.rollout_token_algorithm)


__all__ = ["TokenConfigurationError", "create_rollout_token"]
