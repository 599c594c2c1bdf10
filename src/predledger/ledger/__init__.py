"""Market ledger - state machine, error taxonomy, payout arithmetic, custody."""

from predledger.ledger.clock import ManualClock, system_clock
from predledger.ledger.custody import Custody, InMemoryCustody
from predledger.ledger.engine import MarketLedger
from predledger.ledger.errors import (
    AlreadyClaimed,
    AlreadyResolved,
    InvalidDeadline,
    LedgerError,
    MarketClosed,
    NotAWinner,
    NotAuthorized,
    NotResolved,
    TooEarly,
    TransferFailed,
    UnknownMarket,
    ZeroAmount,
)
from predledger.ledger.payout import compute_reward

__all__ = [
    "MarketLedger",
    "Custody",
    "InMemoryCustody",
    "ManualClock",
    "system_clock",
    "compute_reward",
    "LedgerError",
    "NotAuthorized",
    "InvalidDeadline",
    "UnknownMarket",
    "MarketClosed",
    "ZeroAmount",
    "TooEarly",
    "AlreadyResolved",
    "NotResolved",
    "AlreadyClaimed",
    "NotAWinner",
    "TransferFailed",
]
