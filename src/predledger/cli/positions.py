"""Participant commands: stake, claim, claimable, position."""

from __future__ import annotations

import typer

from predledger.cli.session import fail, ledger_session, resolve_caller
from predledger.ledger.errors import LedgerError
from predledger.models import Side


def stake(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Market ID"),
    side: str = typer.Option(..., "--side", "-s", help="Side to back: a or b"),
    amount: int = typer.Option(..., "--amount", "-a", help="Value to stake (smallest units)"),
    caller: str | None = typer.Option(None, "--as", help="Participant identity"),
) -> None:
    """Stake value on one side of an open market."""
    try:
        chosen = Side.parse(side)
    except ValueError as e:
        typer.echo(str(e))
        raise typer.Exit(1)
    participant = resolve_caller(ctx, caller)
    with ledger_session(ctx) as ledger:
        try:
            ledger.stake(market_id, chosen, amount, caller=participant)
        except LedgerError as e:
            fail(e)
        m = ledger.get_market(market_id)
        typer.echo(f"Staked {amount} on side {chosen.value} of market #{market_id} as {participant}")
        typer.echo(f"Pools: A={m.total_side_a}  B={m.total_side_b}")


def claim(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Market ID"),
    caller: str | None = typer.Option(None, "--as", help="Participant identity"),
) -> None:
    """Withdraw your share of a resolved market's pool."""
    participant = resolve_caller(ctx, caller)
    with ledger_session(ctx) as ledger:
        try:
            reward = ledger.claim(market_id, caller=participant)
        except LedgerError as e:
            fail(e)
        typer.echo(f"Claimed {reward} from market #{market_id} as {participant}")


def claimable(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Market ID"),
    participant: str = typer.Argument(..., help="Participant identity"),
) -> None:
    """Show what a participant could claim right now."""
    with ledger_session(ctx) as ledger:
        try:
            amount = ledger.get_claimable(market_id, participant)
        except LedgerError as e:
            fail(e)
        typer.echo(f"Claimable: {amount}")


def position(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Market ID"),
    participant: str = typer.Argument(..., help="Participant identity"),
) -> None:
    """Show a participant's stakes and claim status in a market."""
    with ledger_session(ctx) as ledger:
        try:
            pos = ledger.get_stakes(market_id, participant)
        except LedgerError as e:
            fail(e)
        typer.echo(f"Side A: {pos.side_a_amount}  Side B: {pos.side_b_amount}  Claimed: {'yes' if pos.claimed else 'no'}")
