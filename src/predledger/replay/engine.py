"""Deterministic replay from the ledger event log - state reconstruction and pool history."""

from __future__ import annotations

from typing import Any, Iterable

import structlog

from predledger.ledger.clock import Clock
from predledger.ledger.custody import InMemoryCustody
from predledger.ledger.engine import MarketLedger
from predledger.models import (
    LedgerEvent,
    MarketCreated,
    MarketResolved,
    RewardClaimed,
    Side,
    StakePlaced,
)
from predledger.storage.event_log import stream_events

log = structlog.get_logger(__name__)


def replay_into(
    ledger: MarketLedger,
    events: Iterable[LedgerEvent],
    custody: InMemoryCustody | None = None,
) -> int:
    """
    Apply events to the ledger in order. If custody is given, deposits and completed
    payouts (RewardClaimed only) are re-booked on it so its balance matches the original
    run. Returns events applied.
    """
    count = 0
    for event in events:
        if custody is not None and isinstance(event, StakePlaced):
            custody.deposit(event.participant, event.amount)
        ledger.apply(event)
        if custody is not None and isinstance(event, RewardClaimed):
            custody.pay_out(event.participant, event.amount)
        count += 1
    return count


def rebuild_ledger(conn: Any, authority: str, clock: Clock | None = None) -> MarketLedger:
    """Return a fresh ledger (with in-memory custody) equal to the one that wrote the log."""
    custody = InMemoryCustody()
    ledger = MarketLedger(authority, clock=clock, custody=custody)
    count = replay_into(ledger, stream_events(conn), custody=custody)
    log.debug("ledger_rebuilt", events=count, markets=ledger.market_count, custody_balance=custody.balance)
    return ledger


def replay_to_pool_series(conn: Any, market_id: int) -> list[dict[str, Any]]:
    """
    Replay one market and return its state after each event:
    [{ts, event_type, total_side_a, total_side_b, resolved, outcome}, ...].
    Deterministic: same DB -> same output.
    """
    total_a = 0
    total_b = 0
    resolved = False
    outcome: bool | None = None
    out: list[dict[str, Any]] = []
    for event in stream_events(conn, market_id=market_id):
        if isinstance(event, StakePlaced):
            if event.side is Side.A:
                total_a += event.amount
            else:
                total_b += event.amount
        elif isinstance(event, MarketResolved):
            resolved = True
            outcome = event.outcome
        elif not isinstance(event, MarketCreated):
            # Claims do not change pools
            continue
        out.append(
            {
                "ts": event.ts,
                "event_type": event.event_type,
                "total_side_a": total_a,
                "total_side_b": total_b,
                "resolved": resolved,
                "outcome": outcome,
            }
        )
    return out
