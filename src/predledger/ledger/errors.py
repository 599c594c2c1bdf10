"""Ledger error taxonomy. One class per precondition, each with a stable code."""

from __future__ import annotations


class LedgerError(Exception):
    """Base for all ledger rejections."""

    code = "ledger_error"

    def __init__(self, message: str = "", **context: object) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.context = context

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.code


class NotAuthorized(LedgerError):
    """Caller is not the ledger authority."""

    code = "not_authorized"


class InvalidDeadline(LedgerError):
    """End time is not strictly in the future."""

    code = "invalid_deadline"


class UnknownMarket(LedgerError):
    """No market with this id."""

    code = "unknown_market"


class MarketClosed(LedgerError):
    """Market deadline has passed; no more stakes."""

    code = "market_closed"


class ZeroAmount(LedgerError):
    """Stake amount must be positive."""

    code = "zero_amount"


class TooEarly(LedgerError):
    """Market cannot be resolved before its end time."""

    code = "too_early"


class AlreadyResolved(LedgerError):
    """Market is already resolved."""

    code = "already_resolved"


class NotResolved(LedgerError):
    """Market is not resolved yet."""

    code = "not_resolved"


class AlreadyClaimed(LedgerError):
    """Reward already claimed for this market."""

    code = "already_claimed"


class NotAWinner(LedgerError):
    """No stake on the winning side."""

    code = "not_a_winner"


class TransferFailed(LedgerError):
    """Payout transfer could not be completed."""

    code = "transfer_failed"


ERRORS_BY_CODE: dict[str, type[LedgerError]] = {
    cls.code: cls
    for cls in (
        NotAuthorized,
        InvalidDeadline,
        UnknownMarket,
        MarketClosed,
        ZeroAmount,
        TooEarly,
        AlreadyResolved,
        NotResolved,
        AlreadyClaimed,
        NotAWinner,
        TransferFailed,
    )
}
