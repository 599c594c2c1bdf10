"""Durable ledger: pinned authority + event log replay + append-on-commit."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from predledger.ledger.clock import Clock, system_clock
from predledger.ledger.engine import MarketLedger
from predledger.replay.engine import rebuild_ledger
from predledger.storage.db import init_schema, set_meta_if_absent
from predledger.storage.event_log import append_event

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

AUTHORITY_KEY = "authority"


def pin_authority(conn: DuckDBPyConnection, configured: str) -> str:
    """Store the authority on first init; afterwards the stored value wins."""
    stored = set_meta_if_absent(conn, AUTHORITY_KEY, configured)
    if stored != configured:
        log.warning("authority_config_ignored", configured=configured, pinned=stored)
    return stored


def open_ledger(conn: DuckDBPyConnection, authority: str, clock: Clock | None = None) -> MarketLedger:
    """Rebuild the ledger from conn and append every newly accepted event to it."""
    init_schema(conn)
    pinned = pin_authority(conn, authority)
    ledger = rebuild_ledger(conn, pinned, clock=clock or system_clock)
    ledger.subscribe(lambda event: append_event(conn, event))
    return ledger
