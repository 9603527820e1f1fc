"""Dialect-aware SQL constructs used by the aggregation queries."""

from __future__ import annotations

from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import GenericFunction


class utc_day(GenericFunction):
    """Truncate a timestamp expression to its calendar day.

    PostgreSQL sessions are pinned to UTC by the engine, so ``date_trunc``
    yields the UTC day. SQLite stores timestamps as ISO text and ``date()``
    takes the leading date part.
    """

    name = "utc_day"
    inherit_cache = True


@compiles(utc_day)
def _compile_utc_day(element, compiler, **kw):
    return "date_trunc('day', %s)" % compiler.process(element.clauses, **kw)


@compiles(utc_day, "sqlite")
def _compile_utc_day_sqlite(element, compiler, **kw):
    return "date(%s)" % compiler.process(element.clauses, **kw)


__all__ = ["utc_day"]
