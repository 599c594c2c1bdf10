"""Market ledger state machine - create, stake, resolve, claim. Open -> Resolved per market."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterable

import structlog

from predledger.ledger.clock import Clock, system_clock
from predledger.ledger.custody import Custody, InMemoryCustody
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
from predledger.models import (
    ClaimForfeited,
    ClaimRecorded,
    LedgerEvent,
    Market,
    MarketCreated,
    MarketResolved,
    RewardClaimed,
    Side,
    StakePlaced,
    StakePosition,
)

log = structlog.get_logger(__name__)

Listener = Callable[[LedgerEvent], None]


@dataclass
class _MarketRecord:
    id: int
    question: str
    end_time: int
    total_side_a: int = 0
    total_side_b: int = 0
    resolved: bool = False
    outcome: bool = False

    def to_model(self) -> Market:
        return Market(
            id=self.id,
            question=self.question,
            end_time=self.end_time,
            total_side_a=self.total_side_a,
            total_side_b=self.total_side_b,
            resolved=self.resolved,
            outcome=self.outcome,
        )


@dataclass
class _Position:
    side_a: int = 0
    side_b: int = 0
    claimed: bool = False

    def amount_on(self, side: Side) -> int:
        return self.side_a if side is Side.A else self.side_b


def _require_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


class MarketLedger:
    """
    In-memory ledger of binary markets. Sole arbiter of correctness: every call is
    re-validated, every precondition checked before any field changes.
    One re-entrant lock serializes all operations (including id assignment).
    """

    def __init__(
        self,
        authority: str,
        clock: Clock | None = None,
        custody: Custody | None = None,
        listeners: Iterable[Listener] = (),
    ) -> None:
        if not authority:
            raise ValueError("authority must be a non-empty identity")
        self._authority = authority
        self._clock = clock or system_clock
        self._custody: Custody = custody if custody is not None else InMemoryCustody()
        self._listeners: list[Listener] = list(listeners)
        self._markets: list[_MarketRecord] = []
        self._positions: dict[tuple[int, str], _Position] = {}
        self._lock = threading.RLock()

    @property
    def authority(self) -> str:
        return self._authority

    @property
    def custody(self) -> Custody:
        return self._custody

    def now(self) -> int:
        """Current ledger time (epoch seconds) as used for deadline checks."""
        return self._clock()

    @property
    def market_count(self) -> int:
        with self._lock:
            return len(self._markets)

    def subscribe(self, listener: Listener) -> None:
        """
        Register a callback invoked once per accepted event, in commit order, before the
        event is applied. A listener that raises aborts the operation with no state change.
        """
        with self._lock:
            self._listeners.append(listener)

    # --- Mutating operations ---

    def create_market(self, question: str, end_time: int, *, caller: str) -> int:
        """Authority only. end_time must be strictly in the future. Returns the new market id."""
        end_time = _require_int(end_time, "end_time")
        with self._lock:
            now = self._clock()
            try:
                self._check_authority(caller)
                if end_time <= now:
                    raise InvalidDeadline(f"end_time {end_time} is not after now ({now})", end_time=end_time)
            except LedgerError as e:
                self._log_rejected("create_market", e, caller=caller)
                raise
            event = MarketCreated(market_id=len(self._markets), question=question, end_time=end_time, ts=now)
            self._emit(event)
            self._apply(event)
            log.info("market_created", market_id=event.market_id, end_time=end_time)
            return event.market_id

    def stake(self, market_id: int, side: Side | str, amount: int, *, caller: str) -> None:
        """Add amount to the caller's position on one side. Value is taken into custody with the update."""
        side = Side.parse(side)
        amount = _require_int(amount, "amount")
        with self._lock:
            now = self._clock()
            try:
                market = self._get_record(market_id)
                if amount <= 0:
                    raise ZeroAmount(f"Stake amount must be positive, got {amount}", amount=amount)
                if now >= market.end_time:
                    raise MarketClosed(f"Market {market_id} closed at {market.end_time}", market_id=market_id)
            except LedgerError as e:
                self._log_rejected("stake", e, market_id=market_id, caller=caller)
                raise
            event = StakePlaced(market_id=market_id, participant=caller, side=side, amount=amount, ts=now)
            self._custody.deposit(caller, amount)
            try:
                self._emit(event)
            except Exception:
                log.warning("stake_refunded", market_id=market_id, participant=caller, amount=amount)
                self._custody.pay_out(caller, amount)
                raise
            self._apply(event)
            log.info("stake_placed", market_id=market_id, participant=caller, side=side.value, amount=amount)

    def stake_side_a(self, market_id: int, amount: int, *, caller: str) -> None:
        self.stake(market_id, Side.A, amount, caller=caller)

    def stake_side_b(self, market_id: int, amount: int, *, caller: str) -> None:
        self.stake(market_id, Side.B, amount, caller=caller)

    def resolve(self, market_id: int, outcome: bool, *, caller: str) -> None:
        """Authority only, at or after end_time, once. outcome=True means side A won."""
        with self._lock:
            now = self._clock()
            try:
                self._check_authority(caller)
                market = self._get_record(market_id)
                if now < market.end_time:
                    raise TooEarly(f"Market {market_id} ends at {market.end_time}", market_id=market_id)
                if market.resolved:
                    raise AlreadyResolved(f"Market {market_id} already resolved", market_id=market_id)
            except LedgerError as e:
                self._log_rejected("resolve", e, market_id=market_id, caller=caller)
                raise
            event = MarketResolved(market_id=market_id, outcome=bool(outcome), ts=now)
            self._emit(event)
            self._apply(event)
            log.info("market_resolved", market_id=market_id, outcome=event.outcome)

    def claim(self, market_id: int, *, caller: str) -> int:
        """
        Pay the caller's share of the pool. The claim record is emitted and applied before
        the transfer; if the transfer fails the record stays set and TransferFailed is raised.
        """
        with self._lock:
            now = self._clock()
            try:
                market = self._get_record(market_id)
                if not market.resolved:
                    raise NotResolved(f"Market {market_id} not resolved", market_id=market_id)
                position = self._positions.get((market_id, caller))
                if position is not None and position.claimed:
                    raise AlreadyClaimed(f"{caller} already claimed market {market_id}", market_id=market_id)
                winning = Side.from_outcome(market.outcome)
                user_stake = position.amount_on(winning) if position is not None else 0
                if user_stake == 0:
                    raise NotAWinner(f"{caller} has no stake on side {winning.value}", market_id=market_id)
            except LedgerError as e:
                self._log_rejected("claim", e, market_id=market_id, caller=caller)
                raise
            reward = compute_reward(user_stake, market.total_side_a, market.total_side_b, market.outcome)
            # Record before transfer: a reentrant or failing transfer must not allow a second claim.
            recorded = ClaimRecorded(market_id=market_id, participant=caller, amount=reward, ts=now)
            self._emit(recorded)
            self._apply(recorded)
            try:
                self._custody.pay_out(caller, reward)
            except TransferFailed as e:
                log.warning("claim_transfer_failed", market_id=market_id, participant=caller, amount=reward, error=e.message)
                self._emit(
                    ClaimForfeited(market_id=market_id, participant=caller, amount=reward, reason=e.message, ts=now)
                )
                raise
            event = RewardClaimed(market_id=market_id, participant=caller, amount=reward, ts=now)
            log.info("reward_claimed", market_id=market_id, participant=caller, amount=reward)
            self._emit(event)
            return reward

    # --- Queries ---

    def get_market(self, market_id: int) -> Market:
        with self._lock:
            return self._get_record(market_id).to_model()

    def list_markets(self) -> list[Market]:
        with self._lock:
            return [m.to_model() for m in self._markets]

    def markets_awaiting_resolution(self) -> list[Market]:
        """Markets past their end time that the authority has not resolved yet."""
        with self._lock:
            now = self._clock()
            return [m.to_model() for m in self._markets if not m.resolved and now >= m.end_time]

    def get_stakes(self, market_id: int, participant: str) -> StakePosition:
        with self._lock:
            self._get_record(market_id)
            position = self._positions.get((market_id, participant))
            if position is None:
                return StakePosition()
            return StakePosition(
                side_a_amount=position.side_a,
                side_b_amount=position.side_b,
                claimed=position.claimed,
            )

    def get_claimable(self, market_id: int, participant: str) -> int:
        """Amount claim() would pay right now; 0 instead of an error when nothing is payable."""
        with self._lock:
            market = self._get_record(market_id)
            position = self._positions.get((market_id, participant))
            if not market.resolved or position is None or position.claimed:
                return 0
            user_stake = position.amount_on(Side.from_outcome(market.outcome))
            return compute_reward(user_stake, market.total_side_a, market.total_side_b, market.outcome)

    # --- Event application (shared by live operations and replay) ---

    def apply(self, event: LedgerEvent) -> None:
        """
        Apply an already-accepted event without time or authority checks, transfers,
        or listener notification. Used to rebuild state from the event log.
        Structural consistency (dense ids, known markets) is still enforced.
        """
        with self._lock:
            self._apply(event)

    def _apply(self, event: LedgerEvent) -> None:
        if isinstance(event, MarketCreated):
            if event.market_id != len(self._markets):
                raise ValueError(f"Out-of-order market id {event.market_id}, expected {len(self._markets)}")
            self._markets.append(_MarketRecord(id=event.market_id, question=event.question, end_time=event.end_time))
        elif isinstance(event, StakePlaced):
            market = self._get_record(event.market_id)
            position = self._positions.setdefault((event.market_id, event.participant), _Position())
            if event.side is Side.A:
                position.side_a += event.amount
                market.total_side_a += event.amount
            else:
                position.side_b += event.amount
                market.total_side_b += event.amount
        elif isinstance(event, MarketResolved):
            market = self._get_record(event.market_id)
            if market.resolved:
                raise AlreadyResolved(f"Market {event.market_id} already resolved", market_id=event.market_id)
            market.resolved = True
            market.outcome = event.outcome
        elif isinstance(event, (ClaimRecorded, RewardClaimed, ClaimForfeited)):
            self._get_record(event.market_id)
            position = self._positions.setdefault((event.market_id, event.participant), _Position())
            position.claimed = True
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")

    # --- Internals ---

    def _check_authority(self, caller: str) -> None:
        if caller != self._authority:
            raise NotAuthorized(f"{caller!r} is not the ledger authority", caller=caller)

    def _get_record(self, market_id: int) -> _MarketRecord:
        if isinstance(market_id, bool) or not isinstance(market_id, int) or not 0 <= market_id < len(self._markets):
            raise UnknownMarket(f"Unknown market: {market_id!r}", market_id=market_id)
        return self._markets[market_id]

    def _emit(self, event: LedgerEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    @staticmethod
    def _log_rejected(op: str, error: LedgerError, **fields: object) -> None:
        log.info("ledger_rejected", op=op, code=error.code, **fields)
