"""Settings resolution tests."""

from __future__ import annotations

import pytest

from crm_dashboard.config import AppSettings, ConfigurationError
from crm_dashboard.db.session import build_engine


def _settings(**overrides) -> AppSettings:
    return AppSettings(_env_file=None, **overrides)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "DATABASE_URL",
        "DB_HOST",
        "DB_PORT",
        "DB_NAME",
        "DB_DATABASE",
        "DB_USER",
        "DB_USERNAME",
        "DB_PASSWORD",
        "DB_PASS",
        "POSTGRES_PASSWORD",
        "DB_SSL",
        "DB_SSL_REJECT_UNAUTHORIZED",
    ):
        monkeypatch.delenv(name, raising=False)


def test_database_url_takes_precedence():
    settings = _settings(database_url="postgresql://crm:pw@db.internal:5432/crm", db_host="ignored")
    url = settings.resolve_database_url()
    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "db.internal"
    assert url.database == "crm"


def test_discrete_settings_build_url_from_env(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "6543")
    monkeypatch.setenv("DB_DATABASE", "crm")
    monkeypatch.setenv("DB_USERNAME", "reader")
    monkeypatch.setenv("POSTGRES_PASSWORD", "pw")

    url = _settings().resolve_database_url()
    assert url.drivername == "postgresql+asyncpg"
    assert (url.host, url.port, url.database, url.username, url.password) == (
        "db.internal",
        6543,
        "crm",
        "reader",
        "pw",
    )


def test_missing_connection_settings_is_configuration_error():
    with pytest.raises(ConfigurationError):
        _settings().resolve_database_url()
    with pytest.raises(ConfigurationError):
        build_engine(_settings())


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"db_host": "localhost"}, None),
        ({"db_host": "db.internal"}, "require"),
        ({"db_host": "db.internal", "db_ssl_reject_unauthorized": True}, "verify-full"),
        ({"db_host": "db.internal", "db_ssl": False}, None),
        ({"db_host": "127.0.0.1", "db_ssl": True}, "require"),
        ({"database_url": "postgresql://u:p@localhost/crm"}, None),
    ],
)
def test_ssl_mode(overrides, expected):
    assert _settings(**overrides).ssl_mode() == expected


def test_dict_for_logging_masks_secrets():
    logged = _settings(database_url="postgresql://u:p@h/db", rollout_client_secret="x").dict_for_logging()
    assert logged["database_url"] == "***"
    assert logged["rollout_client_secret"] == "***"
    assert logged["db_password"] is None
