"""Persistence - DuckDB schema, ledger event log, durable ledger store."""
