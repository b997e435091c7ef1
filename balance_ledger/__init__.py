"""Idempotent balance-transfer ledger on a transactional document store."""

__version__ = "1.0.0"
