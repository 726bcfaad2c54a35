"""Cashbook: cash ledger REST API for banks, branches, accounts and transactions."""

__version__ = "0.1.0"
