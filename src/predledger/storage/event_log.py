"""Ledger event append and query - event sourcing log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Iterator

from predledger.models import LedgerEvent, event_from_dict

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def prepare_event_row(event: LedgerEvent) -> tuple[int, str, str | None, int | None, int, str]:
    """Build a ledger_events row: (market_id, event_type, participant, amount, ts, payload_json)."""
    payload = event.model_dump(mode="json")
    return (
        event.market_id,
        event.event_type,
        payload.get("participant"),
        payload.get("amount"),
        event.ts,
        json.dumps(payload),
    )


def append_event(conn: DuckDBPyConnection, event: LedgerEvent) -> None:
    """Append a single accepted event."""
    conn.execute(
        """
        INSERT INTO ledger_events (market_id, event_type, participant, amount, ts, payload)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        list(prepare_event_row(event)),
    )


def stream_events(conn: DuckDBPyConnection, market_id: int | None = None) -> Iterator[LedgerEvent]:
    """Yield stored events in append order, optionally for one market."""
    if market_id is None:
        rows = conn.execute("SELECT payload FROM ledger_events ORDER BY seq ASC").fetchall()
    else:
        rows = conn.execute(
            "SELECT payload FROM ledger_events WHERE market_id = ? ORDER BY seq ASC", [market_id]
        ).fetchall()
    for (payload_json,) in rows:
        payload: dict[str, Any] = json.loads(payload_json) if isinstance(payload_json, str) else payload_json
        yield event_from_dict(payload)


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, ts range, counts by type and by market."""
    total = conn.execute("SELECT COUNT(*) FROM ledger_events").fetchone()[0]
    min_ts, max_ts = conn.execute("SELECT MIN(ts), MAX(ts) FROM ledger_events").fetchone()
    by_type = conn.execute(
        "SELECT event_type, COUNT(*) FROM ledger_events GROUP BY event_type ORDER BY event_type"
    ).fetchall()
    by_market = conn.execute(
        "SELECT market_id, COUNT(*) AS cnt FROM ledger_events GROUP BY market_id ORDER BY cnt DESC, market_id LIMIT 20"
    ).fetchall()
    return {
        "total_events": total,
        "min_ts": min_ts,
        "max_ts": max_ts,
        "by_type": {r[0]: r[1] for r in by_type},
        "by_market": [{"market_id": r[0], "count": r[1]} for r in by_market],
    }
