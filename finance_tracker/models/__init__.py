"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker system.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.finance import (
    Account,
    AccountCreateRequest,
    AccountDto,
    AccountType,
    AccountUpdateRequest,
    Category,
    CategoryCreateRequest,
    CategoryDeleteResult,
    CategoryDto,
    CategoryUpdateRequest,
    HealthCheckResult,
    LoginRequest,
    LoginResponse,
    OperationType,
    RegisterRequest,
    Transaction,
    TransactionCreateRequest,
    TransactionDto,
    TransactionUpdateRequest,
    User,
)
from finance_tracker.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Entities
    "Account",
    "Category",
    "Transaction",
    "User",
    # Enums
    "AccountType",
    "CategoryDeleteResult",
    "OperationType",
    # Requests
    "AccountCreateRequest",
    "AccountUpdateRequest",
    "CategoryCreateRequest",
    "CategoryUpdateRequest",
    "LoginRequest",
    "RegisterRequest",
    "TransactionCreateRequest",
    "TransactionUpdateRequest",
    # Responses
    "AccountDto",
    "CategoryDto",
    "HealthCheckResult",
    "LoginResponse",
    "TransactionDto",
    # Event models
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
