"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from predledger.models import Market, Side


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    authority: str
    market_count: int


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. unknown_market, market_closed")


# --- Markets ---
class MarketResponse(BaseModel):
    id: int
    question: str
    end_time: int
    total_side_a: int
    total_side_b: int
    resolved: bool
    outcome: bool
    pool: int
    status: str = Field(..., description="open | awaiting_resolution | resolved")

    @classmethod
    def from_market(cls, market: Market, now: int) -> MarketResponse:
        if market.resolved:
            status = "resolved"
        elif market.is_open(now):
            status = "open"
        else:
            status = "awaiting_resolution"
        return cls(**market.model_dump(), pool=market.pool, status=status)


class MarketsListResponse(BaseModel):
    markets: list[MarketResponse]
    total: int


class CreateMarketRequest(BaseModel):
    question: str
    end_time: int = Field(..., description="Epoch seconds; must be in the future")


class CreateMarketResponse(BaseModel):
    market_id: int


# --- Stakes / settlement ---
class StakeRequest(BaseModel):
    side: Side
    amount: int = Field(..., description="Value attached to the stake, in smallest units")


class ResolveRequest(BaseModel):
    outcome: bool = Field(..., description="True if side A won")


class StakesResponse(BaseModel):
    market_id: int
    participant: str
    side_a_amount: int
    side_b_amount: int
    claimed: bool


class ClaimableResponse(BaseModel):
    market_id: int
    participant: str
    amount: int


class ClaimResponse(BaseModel):
    market_id: int
    participant: str
    amount: int


# --- Event log ---
class EventsStatsResponse(BaseModel):
    total_events: int
    min_ts: int | None
    max_ts: int | None
    by_type: dict[str, int]
    by_market: list[dict[str, Any]]


class PoolHistoryResponse(BaseModel):
    market_id: int
    series: list[dict[str, Any]]
