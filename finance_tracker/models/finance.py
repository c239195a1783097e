"""
Core Data Models for Finance Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Keep stored entities separate from what the API exposes

DESIGN DECISION: Amounts are Decimal with two fractional digits everywhere.
Floats never touch a balance.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Supported account types."""
    CASH = "Cash"
    BANK = "Bank"


class OperationType(str, Enum):
    """
    Display label derived from a transaction's sign.

    Never stored: positive amounts are income, negative are expenses.
    """
    INCOME = "Income"
    EXPENSE = "Expense"

    @classmethod
    def from_amount(cls, amount: Decimal) -> "OperationType":
        return cls.EXPENSE if amount < 0 else cls.INCOME


class CategoryDeleteResult(str, Enum):
    """Outcome of a category delete request."""
    DELETED = "deleted"
    NOT_FOUND = "not_found"   # Missing or owned by someone else
    IN_USE = "in_use"         # Still referenced by transactions


# Shared field types
Money = Annotated[Decimal, Field(max_digits=18, decimal_places=2)]
Name = Annotated[str, Field(min_length=1, max_length=100)]
Notes = Annotated[Optional[str], Field(default=None, max_length=500)]

MIN_TRANSACTION_AMOUNT = Decimal("0.01")

# Largest magnitude a decimal(18,2) column holds
MONEY_LIMIT = Decimal("9999999999999999.99")


# =============================================================================
# STORED ENTITIES
# =============================================================================

class User(BaseModel):
    """A person who can log in and own accounts and categories."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    email: str = Field(..., max_length=255)
    password_hash: str = Field(..., max_length=255)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Account(BaseModel):
    """
    A cash or bank account.

    CRITICAL: balance is a cached running total. After creation it only
    changes through the balance ledger or an explicit account edit.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: Name
    account_type: AccountType
    balance: Money = Decimal("0.00")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Category(BaseModel):
    """A user-defined label for transactions."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: Name


class Transaction(BaseModel):
    """
    A single income or expense booked against an account.

    Ownership is transitive: the transaction belongs to whoever owns
    its account.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    category_id: UUID
    amount: Money
    timestamp: datetime
    notes: Notes


# =============================================================================
# API REQUESTS
# =============================================================================

class ApiModel(BaseModel):
    """Base for everything that crosses the HTTP boundary (camelCase JSON)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class AccountCreateRequest(ApiModel):
    name: Name
    account_type: AccountType
    balance: Money = Decimal("0.00")


class AccountUpdateRequest(AccountCreateRequest):
    """Balance here is an absolute override, not a delta."""
    id: UUID


class CategoryCreateRequest(ApiModel):
    name: Name


class CategoryUpdateRequest(CategoryCreateRequest):
    id: UUID


class TransactionCreateRequest(ApiModel):
    """
    Request to book a transaction.

    Amount sign convention: positive = income, negative = expense.
    """
    account_id: UUID
    category_id: UUID
    amount: Money
    timestamp: datetime
    notes: Notes

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("Amount cannot be zero")
        if abs(v) < MIN_TRANSACTION_AMOUNT:
            raise ValueError("Amount must be at least 1 penny (0.01) in absolute value")
        return v


class TransactionUpdateRequest(TransactionCreateRequest):
    id: UUID


class LoginRequest(ApiModel):
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class RegisterRequest(ApiModel):
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=255)


# =============================================================================
# API RESPONSES
# =============================================================================

class AccountDto(ApiModel):
    id: UUID
    name: str
    account_type: AccountType
    balance: Decimal
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountDto":
        return cls(
            id=account.id,
            name=account.name,
            account_type=account.account_type,
            balance=account.balance,
            created_at=account.created_at,
        )


class CategoryDto(ApiModel):
    id: UUID
    name: str

    @classmethod
    def from_category(cls, category: Category) -> "CategoryDto":
        return cls(id=category.id, name=category.name)


class TransactionDto(ApiModel):
    id: UUID
    account_id: UUID
    amount: Decimal
    timestamp: datetime
    category_id: UUID
    notes: Optional[str] = None

    @computed_field(alias="operationType")
    @property
    def operation_type(self) -> OperationType:
        return OperationType.from_amount(self.amount)

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionDto":
        return cls(
            id=transaction.id,
            account_id=transaction.account_id,
            amount=transaction.amount,
            timestamp=transaction.timestamp,
            category_id=transaction.category_id,
            notes=transaction.notes,
        )


class LoginResponse(ApiModel):
    token: str
    email: str
    expires_at: datetime


class HealthCheckResult(ApiModel):
    is_healthy: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_version: Optional[str] = None
