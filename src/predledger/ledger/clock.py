"""Ledger clock - ambient current time in integer epoch seconds."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


class ManualClock:
    """Settable clock for replay tooling and tests."""

    def __init__(self, now: int = 0) -> None:
        self.now = int(now)

    def __call__(self) -> int:
        return self.now

    def set(self, ts: int) -> None:
        self.now = int(ts)
