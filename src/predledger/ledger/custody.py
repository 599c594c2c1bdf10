"""Custody of staked value: inbound deposits and outbound payouts."""

from __future__ import annotations

from collections import defaultdict
from typing import Protocol

import structlog

from predledger.ledger.errors import TransferFailed

log = structlog.get_logger(__name__)


class Custody(Protocol):
    """Value-transfer collaborator used by the ledger."""

    def deposit(self, participant: str, amount: int) -> None: ...

    def pay_out(self, recipient: str, amount: int) -> None:
        """Move amount to recipient. Raise TransferFailed if it cannot complete."""
        ...


class InMemoryCustody:
    """Holds staked value in memory. Refuses payouts larger than the held balance."""

    def __init__(self) -> None:
        self.balance = 0
        self.deposited: dict[str, int] = defaultdict(int)
        self.paid: dict[str, int] = defaultdict(int)

    def deposit(self, participant: str, amount: int) -> None:
        self.balance += amount
        self.deposited[participant] += amount

    def pay_out(self, recipient: str, amount: int) -> None:
        if amount > self.balance:
            log.warning("custody_insufficient_balance", recipient=recipient, amount=amount, balance=self.balance)
            raise TransferFailed(
                f"Custody holds {self.balance}, cannot pay {amount}",
                recipient=recipient,
                amount=amount,
            )
        self.balance -= amount
        self.paid[recipient] += amount

    @property
    def total_paid(self) -> int:
        return sum(self.paid.values())
