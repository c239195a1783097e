"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger and services decoupled from SQLAlchemy
2. Swap SQLite for PostgreSQL (or anything else) without touching business logic
3. Group every repository of one request under a single unit of work

The unit of work is the transactional boundary: everything done through
the repositories it exposes commits together or rolls back together.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.finance import (
    Account,
    Category,
    Transaction,
    User,
)


class UserStorageInterface(ABC):
    """Storage operations for users."""

    @abstractmethod
    async def add(self, user: User) -> User:
        """
        Persist a new user.

        Raises:
            DuplicateError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve a user by email, or None."""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Retrieve a user by id, or None."""
        pass


class AccountStorageInterface(ABC):
    """
    Storage operations for accounts.

    Every lookup is scoped by owner except increment_balance, which
    is reserved for the balance ledger.
    """

    @abstractmethod
    async def add(self, account: Account) -> Account:
        """Persist a new account."""
        pass

    @abstractmethod
    async def exists_for_user(self, account_id: UUID, user_id: UUID) -> bool:
        """
        Check that an account exists AND belongs to the user.

        Returns the same False for "missing" and "someone else's".
        """
        pass

    @abstractmethod
    async def get_owned(self, account_id: UUID, user_id: UUID) -> Optional[Account]:
        """Retrieve an account owned by the user, or None."""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[Account]:
        """List all accounts owned by the user."""
        pass

    @abstractmethod
    async def update(self, account: Account) -> bool:
        """
        Overwrite name, type and balance of an account owned by account.user_id.

        Returns:
            False if no such account belongs to that user
        """
        pass

    @abstractmethod
    async def delete_owned(self, account_id: UUID, user_id: UUID) -> bool:
        """
        Delete an owned account together with all of its transactions.

        Returns:
            False if no such account belongs to that user
        """
        pass

    @abstractmethod
    async def increment_balance(self, account_id: UUID, delta: Decimal) -> bool:
        """
        Add delta to the stored balance in one atomic storage operation.

        Returns:
            False if the account does not exist

        Raises:
            BalanceOutOfRangeError: If the new balance would not fit decimal(18,2)
        """
        pass


class CategoryStorageInterface(ABC):
    """Storage operations for categories."""

    @abstractmethod
    async def add(self, category: Category) -> Category:
        """Persist a new category."""
        pass

    @abstractmethod
    async def exists_for_user(self, category_id: UUID, user_id: UUID) -> bool:
        """Check that a category exists AND belongs to the user."""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[Category]:
        """List all categories owned by the user."""
        pass

    @abstractmethod
    async def update(self, category: Category) -> bool:
        """
        Rename a category owned by category.user_id.

        Returns:
            False if no such category belongs to that user
        """
        pass

    @abstractmethod
    async def delete(self, category_id: UUID) -> bool:
        """
        Delete a category by id.

        Callers must check ownership and usage first.

        Raises:
            InUseError: If transactions still reference it
        """
        pass


class TransactionStorageInterface(ABC):
    """
    Storage operations for transactions.

    Ownership of a transaction is the ownership of its account.
    """

    @abstractmethod
    async def add(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction."""
        pass

    @abstractmethod
    async def get_owned(
        self,
        transaction_id: UUID,
        user_id: UUID,
        for_update: bool = False,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction whose current account belongs to the user.

        With for_update, backends that support row locks keep the row
        locked until the unit of work ends.
        """
        pass

    @abstractmethod
    async def update(self, transaction: Transaction, expected: Transaction) -> bool:
        """
        Overwrite account, category, amount, timestamp and notes.

        Only writes if the stored row still has the account and amount
        of expected, the state the caller computed its balance delta from.

        Returns:
            False if the row is gone or no longer matches expected
        """
        pass

    @abstractmethod
    async def delete(self, expected: Transaction) -> bool:
        """
        Delete a transaction if it still has the account and amount of expected.

        Returns:
            False if the row is gone or no longer matches expected
        """
        pass

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[Transaction]:
        """List every transaction on accounts owned by the user."""
        pass

    @abstractmethod
    async def exists_for_category(self, category_id: UUID) -> bool:
        """Check whether any transaction references the category."""
        pass


class UnitOfWork(ABC):
    """
    One storage transaction.

    Usage:
        async with uow_factory() as uow:
            await uow.transactions.add(...)
            await uow.accounts.increment_balance(...)

    Leaving the block normally commits. Leaving it with an exception
    (including asyncio.CancelledError) rolls everything back.
    """

    users: UserStorageInterface
    accounts: AccountStorageInterface
    categories: CategoryStorageInterface
    transactions: TransactionStorageInterface

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class InUseError(StorageError):
    """Attempted to delete an entity that others still reference."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class ConcurrentWriteError(StorageError):
    """A row kept changing between being read and being written."""
    pass


class BalanceOutOfRangeError(StorageError):
    """A balance change would leave the range of decimal(18,2)."""
    pass
