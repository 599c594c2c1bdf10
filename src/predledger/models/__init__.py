"""Canonical schema (Pydantic) - Market, StakePosition, ledger events."""

from predledger.models.events import (
    ClaimForfeited,
    ClaimRecorded,
    LedgerEvent,
    MarketCreated,
    MarketResolved,
    RewardClaimed,
    StakePlaced,
    event_from_dict,
)
from predledger.models.market import Market, Side, StakePosition

__all__ = [
    "Market",
    "Side",
    "StakePosition",
    "LedgerEvent",
    "MarketCreated",
    "StakePlaced",
    "MarketResolved",
    "ClaimRecorded",
    "RewardClaimed",
    "ClaimForfeited",
    "event_from_dict",
]
