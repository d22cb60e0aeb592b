"""Database engine helpers."""

from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

DEFAULT_DATABASE_URL = "postgresql://user:pass@db:5432/aeoscore"


def create_engine_from_env() -> Engine:
    """Create an engine using the DATABASE_URL environment variable."""
    url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    return create_engine(url, pool_pre_ping=True, future=True)


def json_placeholder(conn: Connection, name: str) -> str:
    """Bind placeholder for a JSON column; PostgreSQL needs an explicit JSONB cast."""
    if conn.dialect.name == "postgresql":
        return f"CAST(:{name} AS JSONB)"
    return f":{name}"
