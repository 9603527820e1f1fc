import asyncio
import inspect
import pathlib
import sys
from datetime import datetime
from typing import Any, Iterable

import pytest
from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, String, Table
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            argnames = pyfuncitem._fixtureinfo.argnames
            kwargs = {name: pyfuncitem.funcargs[name] for name in argnames}
            loop.run_until_complete(test_function(**kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


metadata = MetaData()


def _synced_table(name: str, *, sent: bool = False, incoming: bool = False) -> Table:
    columns = [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("credentialId", String(64)),
        Column("appKey", String(64)),
        Column("created", DateTime(timezone=True)),
        Column("updated", DateTime(timezone=True)),
    ]
    if sent:
        columns.append(Column("sent", DateTime(timezone=True)))
    if incoming:
        columns.append(Column("isIncoming", Boolean))
    return Table(name, metadata, *columns)


PEOPLE = _synced_table("rollout_people")
CALLS = _synced_table("rollout_calls", incoming=True)
TEXTS = _synced_table("rollout_text_messages", sent=True, incoming=True)
EMAILS = _synced_table("rollout_email_messages", sent=True, incoming=True)
# Matches the prefix but carries no credential column.
SYNC_STATE = Table(
    "rollout_sync_state",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("cursor", String(64)),
)
# Carries a credential column but not the prefix.
CRM_NOTES = Table(
    "crm_notes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("credentialId", String(64)),
)


class ActivityStore:
    """Seeds the synced CRM tables in a throwaway SQLite database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def create(self, *tables: Table) -> None:
        async with self.engine.begin() as connection:
            await connection.run_sync(metadata.create_all, tables=list(tables) or None)

    async def insert(self, target: Table, rows: Iterable[dict[str, Any]]) -> None:
        names = [column.name for column in target.columns if not column.primary_key]
        payload = [{name: row.get(name) for name in names} for row in rows]
        if not payload:
            return
        async with self.engine.begin() as connection:
            await connection.execute(target.insert(), payload)


def activity(credential_id: str, created: datetime, **values: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "credentialId": credential_id,
        "appKey": None,
        "created": created,
        "updated": None,
    }
    row.update(values)
    return row


@pytest.fixture()
def database_url(tmp_path: pathlib.Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'activity.db'}"


@pytest.fixture()
def engine(database_url: str) -> AsyncEngine:
    # NullPool keeps connections from outliving the per-test event loop.
    return create_async_engine(database_url, poolclass=NullPool)


@pytest.fixture()
def store(engine: AsyncEngine) -> ActivityStore:
    return ActivityStore(engine)
