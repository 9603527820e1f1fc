"""Fixed registry of dashboard activity metrics.

Each metric is plain data: a single-table count with a time expression and an
optional outbound filter, or a composite summing several single-table metrics.
The query builders in :mod:`crm_dashboard.services.dashboard` turn these
descriptors into SQL, so adding a metric only needs a new registry entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sqlalchemy import Boolean, DateTime, String, false, func, true
from sqlalchemy.sql import ColumnElement, TableClause, column, table

from crm_dashboard.config import DEFAULT_CREDENTIAL_COLUMN

INCOMING_COLUMN = "isIncoming"


@dataclass(frozen=True)
class SingleTableMetric:
    key: str
    label: str
    table: str
    time_columns: tuple[str, ...] = ("created",)
    outbound_only: bool = False

    @property
    def parts(self) -> tuple["SingleTableMetric", ...]:
        return (self,)

    def source(self, credential_column: str = DEFAULT_CREDENTIAL_COLUMN, schema: str | None = None) -> TableClause:
        """Lightweight table construct exposing only the columns this metric reads."""

        columns = [column(credential_column, String)]
        columns.extend(column(name, DateTime(timezone=True)) for name in self.time_columns)
        if self.outbound_only:
            columns.append(column(INCOMING_COLUMN, Boolean))
        return table(self.table, *columns, schema=schema)

    def time_expression(self, source: TableClause) -> ColumnElement:
        if len(self.time_columns) == 1:
            return source.c[self.time_columns[0]]
        return func.coalesce(*(source.c[name] for name in self.time_columns), type_=DateTime(timezone=True))

    def filter_expression(self, source: TableClause) -> ColumnElement:
        if self.outbound_only:
            return func.coalesce(source.c[INCOMING_COLUMN], false()) == false()
        return true()


@dataclass(frozen=True)
class CompositeMetric:
    key: str
    label: str
    parts: tuple[SingleTableMetric, ...]


Metric = Union[SingleTableMetric, CompositeMetric]


CALLS_MADE = SingleTableMetric(
    key="callsMade",
    label="Calls Made",
    table="rollout_calls",
    outbound_only=True,
)
TEXTS_SENT = SingleTableMetric(
    key="textsSent",
    label="Texts Sent (Manual)",
    table="rollout_text_messages",
    time_columns=("sent", "created"),
    outbound_only=True,
)
EMAILS_SENT = SingleTableMetric(
    key="emailsSent",
    label="Emails Sent (Manual)",
    table="rollout_email_messages",
    time_columns=("sent", "created"),
    outbound_only=True,
)
NEW_LEADS_ASSIGNED = SingleTableMetric(
    key="newLeadsAssigned",
    label="New Leads Assigned",
    table="rollout_people",
)
CONTACTS_MADE = CompositeMetric(
    key="contactsMade",
    label="Contacts Made",
    parts=(CALLS_MADE, TEXTS_SENT, EMAILS_SENT),
)

# Display order of the KPI row.
METRICS: dict[str, Metric] = {
    metric.key: metric
    for metric in (NEW_LEADS_ASSIGNED, CONTACTS_MADE, CALLS_MADE, TEXTS_SENT, EMAILS_SENT)
}
DEFAULT_METRIC_KEY = CONTACTS_MADE.key


def resolve_metric(key: str | None) -> Metric:
    """Return the registered metric for ``key``, falling back to the default."""

    if key and key in METRICS:
        return METRICS[key]
    return METRICS[DEFAULT_METRIC_KEY]


__all__ = [
    "CompositeMetric",
    "DEFAULT_METRIC_KEY",
    "METRICS",
    "Metric",
    "SingleTableMetric",
    "resolve_metric",
]
