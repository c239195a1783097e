"""
Ledger Package

The balance ledger updater and the transaction write coordinator:
the only code allowed to change an account balance incrementally.
"""

from finance_tracker.ledger.balance import BalanceLedgerUpdater
from finance_tracker.ledger.coordinator import TransactionWriteCoordinator

__all__ = ["BalanceLedgerUpdater", "TransactionWriteCoordinator"]
