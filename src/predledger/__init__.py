"""PredLedger - binary-outcome betting ledger with proportional payouts."""

from predledger.ledger import MarketLedger

__version__ = "0.1.0"

__all__ = ["MarketLedger", "__version__"]
