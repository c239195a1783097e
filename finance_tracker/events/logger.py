"""
Ledger Event Logger

DESIGN DECISION: Every write that touches a balance is logged.
This provides:
1. Traceability of each balance change back to a request
2. Debugging capability when an invariant looks wrong
3. A visible record when the ledger finds nothing to update

The event logger:
- Only writes to the structured local log (nothing is persisted)
- Supports correlation IDs to trace the events of one request
"""

import logging
import sys
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.events import LedgerEvent, LedgerEventBuilder


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class LedgerEventLogger:
    """
    Central logger for balance-affecting writes.

    One instance is shared by the write coordinator and the
    balance ledger.
    """

    def __init__(self):
        self._logger = structlog.get_logger("finance_tracker.ledger")

    def log(self, event: LedgerEvent) -> None:
        """Log a ledger event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("ledger_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

    def log_ownership_rejected(
        self,
        resource: str,
        resource_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed ownership check."""
        self.log(LedgerEventBuilder.ownership_rejected(
            resource=resource,
            resource_id=resource_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_created(
        self,
        transaction_id: UUID,
        account_id: UUID,
        amount: Decimal,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log transaction creation."""
        self.log(LedgerEventBuilder.transaction_created(
            transaction_id=transaction_id,
            account_id=account_id,
            amount=str(amount),
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_updated(
        self,
        transaction_id: UUID,
        account_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log transaction update."""
        self.log(LedgerEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            account_id=account_id,
            old_amount=str(old_amount),
            new_amount=str(new_amount),
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_moved(
        self,
        transaction_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction moving between accounts."""
        self.log(LedgerEventBuilder.transaction_moved(
            transaction_id=transaction_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: UUID,
        account_id: UUID,
        amount: Decimal,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log transaction deletion."""
        self.log(LedgerEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            account_id=account_id,
            amount=str(amount),
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_not_found(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a lookup of a missing or foreign transaction."""
        self.log(LedgerEventBuilder.transaction_not_found(
            transaction_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_balance_adjusted(
        self,
        account_id: UUID,
        delta: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a balance change."""
        self.log(LedgerEventBuilder.balance_adjusted(
            account_id=account_id,
            delta=str(delta),
            correlation_id=correlation_id,
        ))

    def log_balance_target_missing(
        self,
        account_id: UUID,
        delta: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a balance change that found no account."""
        self.log(LedgerEventBuilder.balance_target_missing(
            account_id=account_id,
            delta=str(delta),
            correlation_id=correlation_id,
        ))

    def log_write_rolled_back(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write that was rolled back by an exception or cancellation."""
        self.log(LedgerEventBuilder.write_rolled_back(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through
    all subsequent operations.
    """
    return uuid4()
