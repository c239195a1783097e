"""
Ledger Event Models for Finance Tracker

Every write that touches a balance emits one of these events to the
structured log. They exist for debugging and operations.

DESIGN DECISION: Events are logged, never stored. The balance is a
running total, not an event-sourced ledger.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events the write path reports."""
    # Ownership
    OWNERSHIP_REJECTED = "ownership_rejected"

    # Transaction writes
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_MOVED = "transaction_moved"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_NOT_FOUND = "transaction_not_found"

    # Balance
    BALANCE_ADJUSTED = "balance_adjusted"
    BALANCE_TARGET_MISSING = "balance_target_missing"

    # System events
    WRITE_ROLLED_BACK = "write_rolled_back"


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single event in the life of one write request."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'category')"
    )
    entity_id: Optional[UUID] = None
    user_id: Optional[UUID] = None

    # Correlation - for tracking the events of one request
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.transaction_created(tx_id, account_id, amount, user_id, cid)
        event = LedgerEventBuilder.balance_adjusted(account_id, delta, cid)
    """

    @staticmethod
    def ownership_rejected(
        resource: str,
        resource_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OWNERSHIP_REJECTED,
            severity=EventSeverity.WARNING,
            entity_type=resource,
            entity_id=resource_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{resource.capitalize()} does not exist or does not belong to user",
        )

    @staticmethod
    def transaction_created(
        transaction_id: UUID,
        account_id: UUID,
        amount: str,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {amount}",
            details={
                "account_id": str(account_id),
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        account_id: UUID,
        old_amount: str,
        new_amount: str,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {old_amount} -> {new_amount}",
            details={
                "account_id": str(account_id),
                "old_amount": old_amount,
                "new_amount": new_amount,
            },
        )

    @staticmethod
    def transaction_moved(
        transaction_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_MOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction moved to another account",
            details={
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        account_id: UUID,
        amount: str,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {amount}",
            details={
                "account_id": str(account_id),
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_not_found(
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_NOT_FOUND,
            severity=EventSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction not found or does not belong to user",
        )

    @staticmethod
    def balance_adjusted(
        account_id: UUID,
        delta: str,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCE_ADJUSTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance adjusted by {delta}",
            details={"delta": delta},
        )

    @staticmethod
    def balance_target_missing(
        account_id: UUID,
        delta: str,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCE_TARGET_MISSING,
            severity=EventSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Account disappeared before its balance could be adjusted",
            details={"delta": delta},
        )

    @staticmethod
    def write_rolled_back(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.WRITE_ROLLED_BACK,
            severity=EventSeverity.ERROR,
            description=f"Write rolled back: {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
