"""Market, Side, StakePosition - canonical ledger entities."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Side(str, Enum):
    """One of the two bettable outcomes of a market."""

    A = "A"
    B = "B"

    @classmethod
    def parse(cls, value: str | Side) -> Side:
        """Accept 'a'/'A'/'yes' for side A and 'b'/'B'/'no' for side B."""
        if isinstance(value, Side):
            return value
        v = str(value).strip().lower()
        if v in ("a", "yes"):
            return cls.A
        if v in ("b", "no"):
            return cls.B
        raise ValueError(f"Unknown side: {value!r} (expected A or B)")

    @classmethod
    def from_outcome(cls, outcome: bool) -> Side:
        return cls.A if outcome else cls.B


class Market(BaseModel):
    """Snapshot of one market. Returned by queries; the ledger keeps its own mutable record."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    question: str
    end_time: int  # epoch seconds
    total_side_a: int = Field(0, ge=0)
    total_side_b: int = Field(0, ge=0)
    resolved: bool = False
    outcome: bool = False  # side A won; only meaningful when resolved

    @property
    def pool(self) -> int:
        return self.total_side_a + self.total_side_b

    @property
    def winning_side(self) -> Side | None:
        if not self.resolved:
            return None
        return Side.from_outcome(self.outcome)

    def is_open(self, now: int) -> bool:
        return not self.resolved and now < self.end_time


class StakePosition(BaseModel):
    """A participant's position in one market."""

    model_config = ConfigDict(frozen=True)

    side_a_amount: int = Field(0, ge=0)
    side_b_amount: int = Field(0, ge=0)
    claimed: bool = False

    def amount_on(self, side: Side) -> int:
        return self.side_a_amount if side is Side.A else self.side_b_amount
