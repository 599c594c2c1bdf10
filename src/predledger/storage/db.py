"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
CREATE SEQUENCE IF NOT EXISTS ledger_event_seq START 1;

-- Ledger-wide settings pinned at first init (e.g. authority)
CREATE TABLE IF NOT EXISTS ledger_meta (
    key             VARCHAR PRIMARY KEY,
    value           VARCHAR NOT NULL
);

-- Accepted ledger events (append-only, event sourcing)
CREATE TABLE IF NOT EXISTS ledger_events (
    seq             BIGINT PRIMARY KEY DEFAULT nextval('ledger_event_seq'),
    market_id       BIGINT NOT NULL,
    event_type      VARCHAR NOT NULL,
    participant     VARCHAR,
    amount          BIGINT,
    ts              BIGINT NOT NULL,
    payload         JSON NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ':memory:' opens an in-memory database."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


def get_meta(conn: DuckDBPyConnection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM ledger_meta WHERE key = ?", [key]).fetchone()
    return row[0] if row else None


def set_meta_if_absent(conn: DuckDBPyConnection, key: str, value: str) -> str:
    """Insert key=value unless already present. Returns the stored value."""
    conn.execute(
        "INSERT INTO ledger_meta (key, value) VALUES (?, ?) ON CONFLICT (key) DO NOTHING",
        [key, value],
    )
    return get_meta(conn, key) or value
