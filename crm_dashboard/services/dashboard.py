"""Per-credential activity aggregation over the synced CRM tables."""

from __future__ import annotations

import asyncio
import logging
import operator
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import reduce
from typing import Any, Awaitable

from opentelemetry import metrics, trace
from sqlalchemy import DateTime, String, and_, func, literal, null, select, type_coerce, union_all
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql import ColumnElement, Select, column, table

from crm_dashboard.config import AppSettings
from crm_dashboard.db.functions import utc_day
from crm_dashboard.services.discovery import SourceTable, TableDiscovery
from crm_dashboard.services.metrics import (
    DEFAULT_METRIC_KEY,
    METRICS,
    Metric,
    SingleTableMetric,
    resolve_metric,
)
from crm_dashboard.services.trend import (
    DEFAULT_RANGE_DAYS,
    TrendPoint,
    clamp_range,
    fill_daily_gaps,
    window_start,
)

logger = logging.getLogger(__name__)

APP_KEY_COLUMN = "appKey"
UPDATED_COLUMN = "updated"


class InvalidDashboardRequest(ValueError):
    """Raised for caller input that cannot be aggregated, before any query runs."""


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    label: str


@dataclass(frozen=True)
class MetricValue:
    key: str
    label: str
    value: int


@dataclass(frozen=True)
class TrendSeries:
    key: str
    label: str
    data: list[TrendPoint] = field(default_factory=list)


@dataclass(frozen=True)
class SourceCount:
    table: str
    value: int


@dataclass(frozen=True)
class CredentialSummary:
    credential_id: str
    app_key: str | None
    last_seen_at: datetime | None


@dataclass(frozen=True)
class DashboardSummary:
    credential_id: str
    range_days: int
    from_date: datetime
    to_date: datetime
    metrics: list[MetricValue]
    available_metrics: list[MetricDescriptor]
    trend: TrendSeries
    sources: list[SourceCount]


async def _gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await every read; on the first failure cancel the rest before re-raising."""

    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _as_utc(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DashboardService:
    """Compute KPI totals, trends, source footprints and credential listings.

    Every public coroutine checks out its own pooled connection, so the
    dashboard summary can fan its reads out concurrently.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        discovery: TableDiscovery | None = None,
        *,
        schema: str | None = None,
        credential_list_limit: int = 200,
        tracer: trace.Tracer | None = None,
        meter: metrics.Meter | None = None,
    ):
        self._engine = engine
        self._discovery = discovery or TableDiscovery(engine, schema=schema)
        self._schema = schema
        self._credential_list_limit = credential_list_limit
        self._tracer = tracer or trace.get_tracer(__name__)
        self._summary_duration = (meter or metrics.get_meter(__name__)).create_histogram(
            "crm_dashboard.summary.duration",
            unit="ms",
            description="Time to assemble one dashboard summary",
        )

    @classmethod
    def from_settings(
        cls,
        engine: AsyncEngine,
        settings: AppSettings,
        *,
        tracer: trace.Tracer | None = None,
        meter: metrics.Meter | None = None,
    ) -> "DashboardService":
        discovery = TableDiscovery(
            engine,
            prefix=settings.source_table_prefix,
            credential_column=settings.credential_column,
            schema=settings.database_schema,
            cache_ttl_seconds=settings.discovery_cache_ttl_seconds,
        )
        return cls(
            engine,
            discovery,
            schema=settings.database_schema,
            credential_list_limit=settings.credential_list_limit,
            tracer=tracer,
            meter=meter,
        )

    @property
    def _credential_column(self) -> str:
        return self._discovery.credential_column

    # Query builders

    def _part_conditions(
        self, part: SingleTableMetric, credential_id: str, start: datetime
    ) -> tuple[Any, ColumnElement, ColumnElement]:
        source = part.source(self._credential_column, self._schema)
        when = part.time_expression(source)
        condition = and_(
            source.c[self._credential_column] == credential_id,
            when >= start,
            part.filter_expression(source),
        )
        return source, when, condition

    def total_statement(self, metric: Metric, credential_id: str, start: datetime) -> Select:
        counts = []
        for part in metric.parts:
            source, _, condition = self._part_conditions(part, credential_id, start)
            counts.append(select(func.count()).select_from(source).where(condition).scalar_subquery())
        return select(reduce(operator.add, counts).label("value"))

    def trend_statement(self, metric: Metric, credential_id: str, start: datetime) -> Select:
        branches = []
        for part in metric.parts:
            source, when, condition = self._part_conditions(part, credential_id, start)
            day = utc_day(when)
            branches.append(
                select(day.label("day"), func.count().label("value"))
                .select_from(source)
                .where(condition)
                .group_by(day)
            )
        combined = branches[0] if len(branches) == 1 else union_all(*branches)
        daily = combined.subquery("daily_channel_counts")
        return (
            select(daily.c.day, func.sum(daily.c.value).label("value"))
            .group_by(daily.c.day)
            .order_by(daily.c.day)
        )

    def footprint_statement(self, tables: list[SourceTable], credential_id: str) -> Select:
        branches = []
        for source_table in tables:
            source = table(source_table.name, column(self._credential_column, String), schema=self._schema)
            branches.append(
                select(
                    literal(source_table.name, String).label("table_name"),
                    func.count().label("value"),
                )
                .select_from(source)
                .where(source.c[self._credential_column] == credential_id)
            )
        combined = branches[0] if len(branches) == 1 else union_all(*branches)
        counts = combined.subquery("table_counts")
        return (
            select(counts.c.table_name, counts.c.value)
            .where(counts.c.value > 0)
            .order_by(counts.c.value.desc(), counts.c.table_name.asc())
        )

    def credentials_statement(self, tables: list[SourceTable]) -> Select:
        branches = []
        for source_table in tables:
            columns = [column(self._credential_column, String)]
            if source_table.has_column(APP_KEY_COLUMN):
                columns.append(column(APP_KEY_COLUMN, String))
            if source_table.has_column(UPDATED_COLUMN):
                columns.append(column(UPDATED_COLUMN, DateTime(timezone=True)))
            source = table(source_table.name, *columns, schema=self._schema)
            credential = source.c[self._credential_column]
            app_key = source.c.get(APP_KEY_COLUMN, type_coerce(null(), String))
            updated = source.c.get(UPDATED_COLUMN, type_coerce(null(), DateTime(timezone=True)))
            branches.append(
                select(
                    credential.label("credential_id"),
                    app_key.label("app_key"),
                    updated.label("updated_at"),
                )
                .where(credential.is_not(None))
                .distinct()
            )
        combined = branches[0] if len(branches) == 1 else union_all(*branches)
        everything = combined.subquery("all_credentials")
        last_seen = func.max(everything.c.updated_at).label("last_seen_at")
        return (
            select(
                everything.c.credential_id,
                func.max(everything.c.app_key).label("app_key"),
                last_seen,
            )
            .group_by(everything.c.credential_id)
            .order_by(last_seen.desc().nulls_last(), everything.c.credential_id.asc())
            .limit(self._credential_list_limit)
        )

    # Computations

    async def compute_metric_total(self, metric: Metric, credential_id: str, start: datetime) -> int:
        """Count matching rows for ``metric``; composites add up their constituents."""

        async with self._engine.connect() as connection:
            value = (await connection.execute(self.total_statement(metric, credential_id, start))).scalar()
        return max(0, int(value or 0))

    async def compute_metric_trend(
        self, metric: Metric, credential_id: str, start: datetime
    ) -> list[tuple[Any, int]]:
        """Return sparse ``(day, count)`` pairs in ascending day order."""

        async with self._engine.connect() as connection:
            result = await connection.execute(self.trend_statement(metric, credential_id, start))
            rows = result.all()
        return [(row.day, int(row.value)) for row in rows]

    async def compute_source_footprint(self, credential_id: str) -> list[SourceCount]:
        tables = await self._discovery.discover()
        if not tables:
            return []
        async with self._engine.connect() as connection:
            result = await connection.execute(self.footprint_statement(tables, credential_id))
            rows = result.all()
        return [SourceCount(table=row.table_name, value=int(row.value)) for row in rows]

    async def compute_credential_list(self) -> list[CredentialSummary]:
        tables = await self._discovery.discover()
        if not tables:
            return []
        async with self._engine.connect() as connection:
            result = await connection.execute(self.credentials_statement(tables))
            rows = result.all()
        return [
            CredentialSummary(
                credential_id=str(row.credential_id),
                app_key=row.app_key,
                last_seen_at=_as_utc(row.last_seen_at),
            )
            for row in rows
        ]

    async def get_dashboard_summary(
        self,
        credential_id: str | None,
        metric_key: str | None = DEFAULT_METRIC_KEY,
        range_days: Any = DEFAULT_RANGE_DAYS,
        *,
        now: datetime | None = None,
    ) -> DashboardSummary:
        """Assemble the KPI row, selected trend and source footprint for one credential."""

        credential_id = (credential_id or "").strip()
        if not credential_id:
            raise InvalidDashboardRequest("credentialId is required")

        days = clamp_range(range_days)
        current = now or datetime.now(timezone.utc)
        start = window_start(days, current)
        resolved = resolve_metric(metric_key)
        if metric_key and resolved.key != metric_key:
            logger.info("Unknown metric %r requested; using %s", metric_key, resolved.key)

        registry = list(METRICS.values())
        started = time.perf_counter()
        outcome = "error"
        try:
            with self._tracer.start_as_current_span(
                "dashboard.summary",
                attributes={"dashboard.metric": resolved.key, "dashboard.range_days": days},
            ) as span:
                *totals, trend_rows, sources = await _gather_all(
                    *(self.compute_metric_total(metric, credential_id, start) for metric in registry),
                    self.compute_metric_trend(resolved, credential_id, start),
                    self.compute_source_footprint(credential_id),
                )
                span.set_attribute("dashboard.source_tables", len(sources))
            outcome = "ok"
        finally:
            self._summary_duration.record(
                (time.perf_counter() - started) * 1000.0,
                {"dashboard.metric": resolved.key, "outcome": outcome},
            )

        return DashboardSummary(
            credential_id=credential_id,
            range_days=days,
            from_date=start,
            to_date=current,
            metrics=[
                MetricValue(key=metric.key, label=metric.label, value=total)
                for metric, total in zip(registry, totals)
            ],
            available_metrics=[MetricDescriptor(key=metric.key, label=metric.label) for metric in registry],
            trend=TrendSeries(
                key=resolved.key,
                label=resolved.label,
                data=fill_daily_gaps(trend_rows, days, today=current.astimezone(timezone.utc).date()),
            ),
            sources=sources,
        )


__all__ = [
    "CredentialSummary",
    "DashboardService",
    "DashboardSummary",
    "InvalidDashboardRequest",
    "MetricDescriptor",
    "MetricValue",
    "SourceCount",
    "TrendSeries",
]
