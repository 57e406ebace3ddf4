"""Wash entry ledger with mutation governance and manager approvals."""

__version__ = "0.1.0"
