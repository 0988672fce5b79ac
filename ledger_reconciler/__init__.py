"""
Ledger Reconciler.

Derives account balances, credit ledgers and record links from an
append-only transaction log.
"""

__version__ = "0.1.0"
