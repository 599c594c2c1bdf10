"""Ledger events - one per accepted mutating operation. Unit of persistence and replay."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from predledger.models.market import Side


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: int = Field(..., ge=0)
    ts: int  # ledger clock (epoch seconds) when the operation was accepted


class MarketCreated(_Event):
    event_type: Literal["market_created"] = "market_created"
    question: str
    end_time: int


class StakePlaced(_Event):
    event_type: Literal["stake_placed"] = "stake_placed"
    participant: str
    side: Side
    amount: int = Field(..., gt=0)


class MarketResolved(_Event):
    event_type: Literal["market_resolved"] = "market_resolved"
    outcome: bool


class ClaimRecorded(_Event):
    """Claim record written before the payout transfer is attempted."""

    event_type: Literal["claim_recorded"] = "claim_recorded"
    participant: str
    amount: int = Field(..., gt=0)


class RewardClaimed(_Event):
    event_type: Literal["reward_claimed"] = "reward_claimed"
    participant: str
    amount: int = Field(..., gt=0)


class ClaimForfeited(_Event):
    """Payout transfer failed after the claim was recorded. Amount stays in custody."""

    event_type: Literal["claim_forfeited"] = "claim_forfeited"
    participant: str
    amount: int = Field(..., gt=0)
    reason: str = ""


LedgerEvent = Union[MarketCreated, StakePlaced, MarketResolved, ClaimRecorded, RewardClaimed, ClaimForfeited]

_EVENT_TYPES: dict[str, type[_Event]] = {
    "market_created": MarketCreated,
    "stake_placed": StakePlaced,
    "market_resolved": MarketResolved,
    "claim_recorded": ClaimRecorded,
    "reward_claimed": RewardClaimed,
    "claim_forfeited": ClaimForfeited,
}


def event_from_dict(payload: dict[str, Any]) -> LedgerEvent:
    """Parse a stored event payload back into its model. Raises ValueError on unknown type."""
    event_type = str(payload.get("event_type", ""))
    cls = _EVENT_TYPES.get(event_type)
    if cls is None:
        raise ValueError(f"Unknown ledger event type: {event_type!r}")
    return cls.model_validate(payload)
