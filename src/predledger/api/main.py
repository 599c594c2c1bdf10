"""FastAPI backend for the ledger dashboard."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predledger.api.schemas import (
    ClaimableResponse,
    ClaimResponse,
    CreateMarketRequest,
    CreateMarketResponse,
    ErrorResponse,
    EventsStatsResponse,
    HealthResponse,
    MarketResponse,
    MarketsListResponse,
    PoolHistoryResponse,
    ResolveRequest,
    StakeRequest,
    StakesResponse,
)
from predledger.config import get_settings
from predledger.ledger.engine import MarketLedger
from predledger.ledger.errors import LedgerError
from predledger.replay.engine import replay_to_pool_series
from predledger.storage.db import get_connection
from predledger.storage.event_log import log_stats
from predledger.storage.ledger_store import open_ledger

log = structlog.get_logger(__name__)

# Set by run_api() so lifespan picks the same profile and config dir as the CLI.
_config_profile: str | None = None
_config_dir: Path | None = None

ERROR_STATUS = {
    "not_authorized": 403,
    "unknown_market": 404,
    "invalid_deadline": 400,
    "zero_amount": 400,
    "market_closed": 409,
    "too_early": 409,
    "already_resolved": 409,
    "not_resolved": 409,
    "already_claimed": 409,
    "not_a_winner": 409,
    "transfer_failed": 502,
}

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing X-Caller header", "model": ErrorResponse},
    403: {"description": "Caller is not the authority", "model": ErrorResponse},
    404: {"description": "Unknown market", "model": ErrorResponse},
    409: {"description": "Market state does not allow this operation", "model": ErrorResponse},
}


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


class MissingCaller(Exception):
    pass


def _require_caller(x_caller: str | None) -> str:
    caller = (x_caller or "").strip()
    if not caller:
        raise MissingCaller()
    return caller


def _ledger(request: Request) -> MarketLedger:
    return request.app.state.ledger


def create_app(ledger: MarketLedger | None = None, conn: Any = None) -> FastAPI:
    """
    Build the API. With no arguments the lifespan opens the configured database and
    rebuilds the ledger from its event log. Tests pass a ledger (and optionally the
    connection backing its event log) directly.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_conn = None
        if ledger is None:
            settings = get_settings(_config_profile, _config_dir)
            owned_conn = get_connection(settings.db_path)
            app.state.conn = owned_conn
            app.state.ledger = open_ledger(owned_conn, settings.authority)
            log.info("api_ledger_loaded", db_path=settings.db_path, markets=app.state.ledger.market_count)
        else:
            app.state.ledger = ledger
            app.state.conn = conn
        yield
        if owned_conn is not None:
            owned_conn.close()

    app = FastAPI(title="PredLedger API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(LedgerError)
    async def _ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        return _error_json(exc.code, exc.message, ERROR_STATUS.get(exc.code, 400))

    @app.exception_handler(MissingCaller)
    async def _missing_caller(request: Request, exc: MissingCaller) -> JSONResponse:
        return _error_json("missing_caller", "X-Caller header is required", 401)

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        ledger_ = _ledger(request)
        return HealthResponse(status="ok", authority=ledger_.authority, market_count=ledger_.market_count)

    @app.get("/markets", response_model=MarketsListResponse)
    def markets_list(
        request: Request,
        pending_only: bool = Query(False, description="Only markets past end time awaiting resolution"),
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ) -> MarketsListResponse:
        """List markets in id order with optional limit/offset."""
        ledger_ = _ledger(request)
        now = ledger_.now()
        all_markets = ledger_.markets_awaiting_resolution() if pending_only else ledger_.list_markets()
        page = all_markets[offset : offset + limit]
        return MarketsListResponse(
            markets=[MarketResponse.from_market(m, now) for m in page],
            total=len(all_markets),
        )

    @app.get("/markets/{market_id}", response_model=MarketResponse, responses={404: _ERROR_RESPONSES[404]})
    def market_detail(request: Request, market_id: int) -> MarketResponse:
        ledger_ = _ledger(request)
        return MarketResponse.from_market(ledger_.get_market(market_id), ledger_.now())

    @app.get("/markets/{market_id}/stakes/{participant}", response_model=StakesResponse)
    def market_stakes(request: Request, market_id: int, participant: str) -> StakesResponse:
        pos = _ledger(request).get_stakes(market_id, participant)
        return StakesResponse(market_id=market_id, participant=participant, **pos.model_dump())

    @app.get("/markets/{market_id}/claimable/{participant}", response_model=ClaimableResponse)
    def market_claimable(request: Request, market_id: int, participant: str) -> ClaimableResponse:
        amount = _ledger(request).get_claimable(market_id, participant)
        return ClaimableResponse(market_id=market_id, participant=participant, amount=amount)

    @app.get("/markets/{market_id}/history", response_model=PoolHistoryResponse)
    def market_history(request: Request, market_id: int) -> PoolHistoryResponse:
        """Pool totals after each event, replayed from the event log."""
        _ledger(request).get_market(market_id)
        conn = request.app.state.conn
        if conn is None:
            return PoolHistoryResponse(market_id=market_id, series=[])
        cur = conn.cursor()
        try:
            return PoolHistoryResponse(market_id=market_id, series=replay_to_pool_series(cur, market_id))
        finally:
            cur.close()

    @app.get("/events/stats", response_model=EventsStatsResponse)
    def events_stats(request: Request):
        conn = request.app.state.conn
        if conn is None:
            return _error_json("no_event_log", "No event log attached", 404)
        cur = conn.cursor()
        try:
            return EventsStatsResponse(**log_stats(cur))
        finally:
            cur.close()

    @app.post("/markets", response_model=CreateMarketResponse, status_code=201, responses=_ERROR_RESPONSES)
    def create_market(
        request: Request,
        body: CreateMarketRequest,
        x_caller: str | None = Header(None),
    ) -> CreateMarketResponse:
        caller = _require_caller(x_caller)
        market_id = _ledger(request).create_market(body.question, body.end_time, caller=caller)
        return CreateMarketResponse(market_id=market_id)

    @app.post("/markets/{market_id}/stake", response_model=StakesResponse, responses=_ERROR_RESPONSES)
    def stake(
        request: Request,
        market_id: int,
        body: StakeRequest,
        x_caller: str | None = Header(None),
    ) -> StakesResponse:
        caller = _require_caller(x_caller)
        ledger_ = _ledger(request)
        ledger_.stake(market_id, body.side, body.amount, caller=caller)
        pos = ledger_.get_stakes(market_id, caller)
        return StakesResponse(market_id=market_id, participant=caller, **pos.model_dump())

    @app.post("/markets/{market_id}/resolve", response_model=MarketResponse, responses=_ERROR_RESPONSES)
    def resolve(
        request: Request,
        market_id: int,
        body: ResolveRequest,
        x_caller: str | None = Header(None),
    ) -> MarketResponse:
        caller = _require_caller(x_caller)
        ledger_ = _ledger(request)
        ledger_.resolve(market_id, body.outcome, caller=caller)
        return MarketResponse.from_market(ledger_.get_market(market_id), ledger_.now())

    @app.post(
        "/markets/{market_id}/claim",
        response_model=ClaimResponse,
        responses={**_ERROR_RESPONSES, 502: {"description": "Payout transfer failed", "model": ErrorResponse}},
    )
    def claim(request: Request, market_id: int, x_caller: str | None = Header(None)) -> ClaimResponse:
        caller = _require_caller(x_caller)
        amount = _ledger(request).claim(market_id, caller=caller)
        return ClaimResponse(market_id=market_id, participant=caller, amount=amount)

    return app


app = create_app()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    """Run uvicorn with the app."""
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    import uvicorn

    uvicorn.run(app, host=host, port=port)
