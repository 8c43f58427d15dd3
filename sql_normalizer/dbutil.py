"""
Small helpers for tooling that dumps or inspects a live database.

All helpers take an explicit SQLAlchemy connection; nothing here opens
connections or manages transactions.
"""

from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import urlsplit

from sqlalchemy.engine import Connection


def database_name(url: str) -> str:
    """Database name from a connection URL: the path without its leading slash."""
    return urlsplit(url).path.lstrip("/")


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def query_column(conn: Connection, query: str, *args: Any) -> List[Optional[str]]:
    """
    Run ``query`` and return the first column of every row as text.

    ``query`` uses the driver's own positional placeholder style
    (``?`` for sqlite, ``%s`` for psycopg, ...).
    """
    rs = conn.exec_driver_sql(query, tuple(args))
    return [_as_text(row[0]) for row in rs]


def query_value(conn: Connection, query: str, *args: Any) -> Optional[str]:
    """Run ``query`` and return the first column of the first row as text."""
    rs = conn.exec_driver_sql(query, tuple(args))
    row = rs.first()
    if row is None:
        return None
    return _as_text(row[0])
