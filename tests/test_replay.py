"""Event log persistence, replay determinism, and durable ledger store."""

import tempfile
from pathlib import Path

import duckdb
import pytest

from predledger.ledger import (
    AlreadyClaimed,
    InMemoryCustody,
    ManualClock,
    MarketClosed,
    MarketLedger,
    TransferFailed,
)
from predledger.models import ClaimForfeited, ClaimRecorded, MarketCreated, Side, StakePlaced
from predledger.replay.engine import rebuild_ledger, replay_to_pool_series
from predledger.storage.db import get_connection, get_meta, init_schema
from predledger.storage.event_log import append_event, log_stats, stream_events
from predledger.storage.ledger_store import open_ledger

START = 1_700_000_000


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


def _populate(ledger, clock):
    """Two markets: #0 resolved for A with claims, #1 still open."""
    ledger.create_market("Will it rain?", START + 100, caller="admin")
    ledger.create_market("Will it snow?", START + 1000, caller="admin")
    ledger.stake_side_a(0, 3, caller="user1")
    ledger.stake_side_a(0, 1, caller="user2")
    ledger.stake_side_b(0, 4, caller="user3")
    ledger.stake_side_b(1, 9, caller="user1")
    clock.set(START + 100)
    ledger.resolve(0, True, caller="admin")
    ledger.claim(0, caller="user1")


def test_event_round_trip_through_log(temp_db):
    event = StakePlaced(market_id=2, participant="alice", side=Side.B, amount=42, ts=START)
    append_event(temp_db, MarketCreated(market_id=2, question="Q?", end_time=START + 1, ts=START))
    append_event(temp_db, event)
    events = list(stream_events(temp_db))
    assert events[1] == event
    assert list(stream_events(temp_db, market_id=3)) == []
    row = temp_db.execute("SELECT participant, amount FROM ledger_events WHERE event_type = 'stake_placed'").fetchone()
    assert row == ("alice", 42)


def test_rebuild_matches_original(temp_db):
    clock = ManualClock(START)
    ledger = open_ledger(temp_db, "admin", clock=clock)
    _populate(ledger, clock)

    rebuilt = rebuild_ledger(temp_db, "admin", clock=clock)
    assert rebuilt.list_markets() == ledger.list_markets()
    for who in ("user1", "user2", "user3"):
        for market_id in (0, 1):
            assert rebuilt.get_stakes(market_id, who) == ledger.get_stakes(market_id, who)
            assert rebuilt.get_claimable(market_id, who) == ledger.get_claimable(market_id, who)
    assert rebuilt.custody.balance == ledger.custody.balance == 11
    with pytest.raises(AlreadyClaimed):
        rebuilt.claim(0, caller="user1")
    assert rebuilt.claim(0, caller="user2") == 2


def test_replay_is_deterministic(temp_db):
    clock = ManualClock(START)
    _populate(open_ledger(temp_db, "admin", clock=clock), clock)
    series1 = replay_to_pool_series(temp_db, 0)
    series2 = replay_to_pool_series(temp_db, 0)
    assert series1 == series2
    assert [row["event_type"] for row in series1] == [
        "market_created",
        "stake_placed",
        "stake_placed",
        "stake_placed",
        "market_resolved",
    ]
    assert series1[-1]["total_side_a"] == 4
    assert series1[-1]["total_side_b"] == 4
    assert series1[-1]["resolved"] is True
    assert series1[-1]["outcome"] is True


def test_reopened_ledger_keeps_enforcing_rules(temp_db):
    clock = ManualClock(START)
    _populate(open_ledger(temp_db, "admin", clock=clock), clock)
    clock.set(START + 1000)
    reopened = open_ledger(temp_db, "admin", clock=clock)
    with pytest.raises(MarketClosed):
        reopened.stake_side_a(1, 5, caller="user2")
    reopened.resolve(1, False, caller="admin")
    assert reopened.claim(1, caller="user1") == 9
    assert log_stats(temp_db)["by_type"]["reward_claimed"] == 2


def test_authority_pinned_on_first_open(temp_db):
    open_ledger(temp_db, "admin", clock=ManualClock(START))
    reopened = open_ledger(temp_db, "mallory", clock=ManualClock(START))
    assert reopened.authority == "admin"
    assert get_meta(temp_db, "authority") == "admin"


def test_forfeited_claim_survives_replay(temp_db):
    class FailingCustody(InMemoryCustody):
        def pay_out(self, recipient, amount):
            raise TransferFailed("rejected")

    clock = ManualClock(START)
    ledger = MarketLedger(
        "admin", clock=clock, custody=FailingCustody(), listeners=[lambda e: append_event(temp_db, e)]
    )
    ledger.create_market("Q?", START + 10, caller="admin")
    ledger.stake_side_a(0, 5, caller="alice")
    clock.set(START + 10)
    ledger.resolve(0, True, caller="admin")
    with pytest.raises(TransferFailed):
        ledger.claim(0, caller="alice")

    events = list(stream_events(temp_db))
    assert isinstance(events[-1], ClaimForfeited)
    rebuilt = rebuild_ledger(temp_db, "admin", clock=clock)
    assert rebuilt.get_stakes(0, "alice").claimed is True
    assert rebuilt.custody.balance == 5


def test_log_stats(temp_db):
    clock = ManualClock(START)
    _populate(open_ledger(temp_db, "admin", clock=clock), clock)
    stats = log_stats(temp_db)
    assert stats["total_events"] == 9
    assert stats["min_ts"] == START
    assert stats["max_ts"] == START + 100
    assert stats["by_type"]["stake_placed"] == 4
    assert stats["by_type"]["claim_recorded"] == 1
    assert stats["by_market"][0] == {"market_id": 0, "count": 7}


def test_claim_record_is_logged_before_transfer(temp_db):
    class CrashingCustody(InMemoryCustody):
        def __init__(self):
            super().__init__()
            self.logged_at_transfer = []

        def pay_out(self, recipient, amount):
            self.logged_at_transfer = [e for e in stream_events(temp_db) if isinstance(e, ClaimRecorded)]
            raise RuntimeError("process died after sending funds")

    clock = ManualClock(START)
    custody = CrashingCustody()
    ledger = MarketLedger("admin", clock=clock, custody=custody, listeners=[lambda e: append_event(temp_db, e)])
    ledger.create_market("Q?", START + 10, caller="admin")
    ledger.stake_side_a(0, 5, caller="alice")
    ledger.stake_side_b(0, 5, caller="bob")
    clock.set(START + 10)
    ledger.resolve(0, True, caller="admin")
    with pytest.raises(RuntimeError):
        ledger.claim(0, caller="alice")

    assert [(e.participant, e.amount) for e in custody.logged_at_transfer] == [("alice", 10)]
    restarted = open_ledger(temp_db, "admin", clock=clock)
    assert restarted.get_stakes(0, "alice").claimed is True
    assert restarted.get_claimable(0, "alice") == 0
    with pytest.raises(AlreadyClaimed):
        restarted.claim(0, caller="alice")
    # Unconfirmed payouts are not debited on replay
    assert restarted.custody.balance == 10


def test_failed_log_write_rolls_back_stake(temp_db):
    clock = ManualClock(START)
    ledger = open_ledger(temp_db, "admin", clock=clock)
    ledger.create_market("Q?", START + 10, caller="admin")
    temp_db.execute("DROP TABLE ledger_events")
    with pytest.raises(duckdb.Error):
        ledger.stake_side_a(0, 7, caller="alice")
    assert ledger.get_market(0).total_side_a == 0
    assert ledger.custody.balance == 0
