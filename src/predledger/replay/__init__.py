"""Replay - rebuild ledger state from the event log."""
