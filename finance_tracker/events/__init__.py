"""Ledger event logging package."""

from finance_tracker.events.logger import (
    LedgerEventLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["LedgerEventLogger", "configure_logging", "create_correlation_id"]
