"""
Finance Tracker - Source Package

Backend for a personal finance tracker: accounts, categories and
transactions, with each account's balance kept in step with its
transactions.

DESIGN PRINCIPLES:
1. Every write is scoped to the user who owns the data
2. The balance has exactly one incremental writer (the ledger)
3. A transaction write and its balance change commit together or not at all
4. Expected outcomes are return values, infrastructure failures are exceptions
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
