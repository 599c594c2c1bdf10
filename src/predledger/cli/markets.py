"""Market subcommand: create, list, show, pending, resolve, history."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from predledger.cli.session import fail, ledger_session, resolve_caller
from predledger.ledger.errors import LedgerError
from predledger.models import Market, Side
from predledger.replay.engine import replay_to_pool_series
from predledger.storage.db import get_connection, init_schema

app = typer.Typer(help="Market creation, listing, and resolution")


def _fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _status(market: Market, now: int) -> str:
    if market.resolved:
        return f"resolved ({market.winning_side.value} won)"
    return "open" if market.is_open(now) else "awaiting resolution"


def _echo_market_line(market: Market, now: int) -> None:
    question = market.question[:60]
    typer.echo(
        f"  #{market.id:<4} A={market.total_side_a:<10} B={market.total_side_b:<10} "
        f"{_status(market, now):<22} {question}"
    )


@app.command("create")
def create(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Proposition text"),
    ends_in: int | None = typer.Option(None, "--ends-in", help="Seconds from now until staking closes"),
    end_time: int | None = typer.Option(None, "--end-time", help="Absolute end time (epoch seconds)"),
    caller: str | None = typer.Option(None, "--as", help="Caller identity (default: configured authority)"),
) -> None:
    """Create a market (authority only)."""
    if (ends_in is None) == (end_time is None):
        typer.echo("Pass exactly one of --ends-in or --end-time")
        raise typer.Exit(1)
    with ledger_session(ctx) as ledger:
        deadline = end_time if end_time is not None else ledger.now() + ends_in
        try:
            market_id = ledger.create_market(question, deadline, caller=resolve_caller(ctx, caller))
        except LedgerError as e:
            fail(e)
        typer.echo(f"Created market #{market_id}, closes {_fmt_ts(deadline)}")


@app.command("list")
def list_markets(ctx: typer.Context) -> None:
    """List all markets."""
    with ledger_session(ctx) as ledger:
        now = ledger.now()
        markets = ledger.list_markets()
        for m in markets:
            _echo_market_line(m, now)
        typer.echo(f"Total: {len(markets)} markets")


@app.command("pending")
def pending(ctx: typer.Context) -> None:
    """List markets past their end time that still need resolving."""
    with ledger_session(ctx) as ledger:
        now = ledger.now()
        markets = ledger.markets_awaiting_resolution()
        for m in markets:
            _echo_market_line(m, now)
        typer.echo(f"Awaiting resolution: {len(markets)}")


@app.command("show")
def show(ctx: typer.Context, market_id: int = typer.Argument(..., help="Market ID")) -> None:
    """Show one market."""
    with ledger_session(ctx) as ledger:
        try:
            m = ledger.get_market(market_id)
        except LedgerError as e:
            fail(e)
        typer.echo(f"Market #{m.id}: {m.question}")
        typer.echo(f"Ends: {_fmt_ts(m.end_time)}  Status: {_status(m, ledger.now())}")
        typer.echo(f"Side A: {m.total_side_a}  Side B: {m.total_side_b}  Pool: {m.pool}")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Market ID"),
    outcome: str = typer.Option(..., "--outcome", "-o", help="Winning side: a or b"),
    caller: str | None = typer.Option(None, "--as", help="Caller identity (default: configured authority)"),
) -> None:
    """Declare the winning side (authority only, after end time)."""
    try:
        side = Side.parse(outcome)
    except ValueError as e:
        typer.echo(str(e))
        raise typer.Exit(1)
    with ledger_session(ctx) as ledger:
        try:
            ledger.resolve(market_id, side is Side.A, caller=resolve_caller(ctx, caller))
        except LedgerError as e:
            fail(e)
        typer.echo(f"Market #{market_id} resolved: side {side.value} won")


@app.command("history")
def history(ctx: typer.Context, market_id: int = typer.Argument(..., help="Market ID")) -> None:
    """Replay pool totals for a market from the event log."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        series = replay_to_pool_series(conn, market_id)
        if not series:
            typer.echo(f"No events for market #{market_id}")
            raise typer.Exit(1)
        for row in series:
            typer.echo(
                f"  {_fmt_ts(row['ts'])}  {row['event_type']:<16} A={row['total_side_a']}  B={row['total_side_b']}"
            )
    finally:
        conn.close()
