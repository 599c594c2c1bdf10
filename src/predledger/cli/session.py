"""Shared CLI helpers: open the durable ledger, report ledger errors."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, NoReturn

import typer

from predledger.ledger.engine import MarketLedger
from predledger.ledger.errors import LedgerError
from predledger.storage.db import get_connection
from predledger.storage.ledger_store import open_ledger


@contextmanager
def ledger_session(ctx: typer.Context) -> Iterator[MarketLedger]:
    """Rebuild the ledger from the configured database; new events are appended as they commit."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    try:
        yield open_ledger(conn, settings.authority)
    finally:
        conn.close()


def resolve_caller(ctx: typer.Context, caller: str | None) -> str:
    return caller or ctx.obj["settings"].authority


def fail(error: LedgerError) -> NoReturn:
    typer.echo(f"Error [{error.code}]: {error.message}")
    raise typer.Exit(1)
