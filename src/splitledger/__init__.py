"""Splitledger - group expense ledger with debt simplification."""

__version__ = "0.1.0"
