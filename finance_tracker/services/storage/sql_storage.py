"""
SQLAlchemy Storage Implementation

Implements the storage interfaces on top of an AsyncSession. One
SqlUnitOfWork owns one session and one database transaction; the
repositories it hands out all share that session.

Rows never leave this module: every method returns the pydantic
entities from finance_tracker.models.
"""

import functools
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finance_tracker.models.finance import (
    MONEY_LIMIT,
    Account,
    Category,
    Transaction,
    User,
)
from finance_tracker.services.storage.interface import (
    AccountStorageInterface,
    BalanceOutOfRangeError,
    CategoryStorageInterface,
    DuplicateError,
    InUseError,
    StorageError,
    TransactionStorageInterface,
    UnitOfWork,
    UserStorageInterface,
)
from finance_tracker.services.storage.tables import (
    AccountRow,
    CategoryRow,
    TransactionRow,
    UserRow,
)


logger = structlog.get_logger(__name__)


def wraps_storage_errors(operation: str):
    """Re-raise driver/ORM failures as StorageError, keep our own errors as they are."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to {operation}: {e}") from e
        return wrapper
    return decorator


def _as_utc_naive(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SqlUserStorage(UserStorageInterface):

    def __init__(self, session: AsyncSession):
        self._session = session

    @wraps_storage_errors("add user")
    async def add(self, user: User) -> User:
        self._session.add(UserRow(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            is_active=user.is_active,
            created_at=_as_utc_naive(user.created_at),
        ))
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateError(f"Email already registered: {user.email}") from e
        return user

    @wraps_storage_errors("get user")
    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(
            select(UserRow).where(UserRow.email == email)
        )
        row = result.scalar_one_or_none()
        return User.model_validate(row) if row else None

    @wraps_storage_errors("get user")
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        row = await self._session.get(UserRow, user_id)
        return User.model_validate(row) if row else None


class SqlAccountStorage(AccountStorageInterface):

    def __init__(self, session: AsyncSession):
        self._session = session

    @wraps_storage_errors("add account")
    async def add(self, account: Account) -> Account:
        self._session.add(AccountRow(
            id=account.id,
            user_id=account.user_id,
            name=account.name,
            account_type=account.account_type.value,
            balance=account.balance,
            created_at=_as_utc_naive(account.created_at),
        ))
        await self._session.flush()
        return account

    @wraps_storage_errors("check account ownership")
    async def exists_for_user(self, account_id: UUID, user_id: UUID) -> bool:
        result = await self._session.execute(
            select(exists().where(
                AccountRow.id == account_id,
                AccountRow.user_id == user_id,
            ))
        )
        return bool(result.scalar())

    @wraps_storage_errors("get account")
    async def get_owned(self, account_id: UUID, user_id: UUID) -> Optional[Account]:
        result = await self._session.execute(
            select(AccountRow).where(
                AccountRow.id == account_id,
                AccountRow.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        return Account.model_validate(row) if row else None

    @wraps_storage_errors("list accounts")
    async def list_for_user(self, user_id: UUID) -> list[Account]:
        result = await self._session.execute(
            select(AccountRow)
            .where(AccountRow.user_id == user_id)
            .order_by(AccountRow.created_at, AccountRow.id)
        )
        return [Account.model_validate(row) for row in result.scalars()]

    @wraps_storage_errors("update account")
    async def update(self, account: Account) -> bool:
        result = await self._session.execute(
            update(AccountRow)
            .where(
                AccountRow.id == account.id,
                AccountRow.user_id == account.user_id,
            )
            .values(
                name=account.name,
                account_type=account.account_type.value,
                balance=account.balance,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @wraps_storage_errors("delete account")
    async def delete_owned(self, account_id: UUID, user_id: UUID) -> bool:
        if not await self.exists_for_user(account_id, user_id):
            return False

        # Explicit so the cascade does not depend on the backend enforcing FKs
        await self._session.execute(
            delete(TransactionRow).where(TransactionRow.account_id == account_id)
        )
        await self._session.execute(
            delete(AccountRow).where(AccountRow.id == account_id)
        )
        return True

    @wraps_storage_errors("update balance")
    async def increment_balance(self, account_id: UUID, delta: Decimal) -> bool:
        # Single UPDATE ... SET balance = balance + :delta; the database
        # serializes concurrent writers on the row.
        new_balance = AccountRow.balance + delta
        result = await self._session.execute(
            update(AccountRow)
            .where(
                AccountRow.id == account_id,
                new_balance.between(-MONEY_LIMIT, MONEY_LIMIT),
            )
            .values(balance=new_balance)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount > 0:
            return True

        found = await self._session.execute(
            select(exists().where(AccountRow.id == account_id))
        )
        if found.scalar():
            raise BalanceOutOfRangeError(
                f"Adding {delta} to account {account_id} leaves the decimal(18,2) range"
            )
        return False


class SqlCategoryStorage(CategoryStorageInterface):

    def __init__(self, session: AsyncSession):
        self._session = session

    @wraps_storage_errors("add category")
    async def add(self, category: Category) -> Category:
        self._session.add(CategoryRow(
            id=category.id,
            user_id=category.user_id,
            name=category.name,
        ))
        await self._session.flush()
        return category

    @wraps_storage_errors("check category ownership")
    async def exists_for_user(self, category_id: UUID, user_id: UUID) -> bool:
        result = await self._session.execute(
            select(exists().where(
                CategoryRow.id == category_id,
                CategoryRow.user_id == user_id,
            ))
        )
        return bool(result.scalar())

    @wraps_storage_errors("list categories")
    async def list_for_user(self, user_id: UUID) -> list[Category]:
        result = await self._session.execute(
            select(CategoryRow)
            .where(CategoryRow.user_id == user_id)
            .order_by(CategoryRow.name, CategoryRow.id)
        )
        return [Category.model_validate(row) for row in result.scalars()]

    @wraps_storage_errors("update category")
    async def update(self, category: Category) -> bool:
        result = await self._session.execute(
            update(CategoryRow)
            .where(
                CategoryRow.id == category.id,
                CategoryRow.user_id == category.user_id,
            )
            .values(name=category.name)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @wraps_storage_errors("delete category")
    async def delete(self, category_id: UUID) -> bool:
        try:
            result = await self._session.execute(
                delete(CategoryRow).where(CategoryRow.id == category_id)
            )
        except IntegrityError as e:
            raise InUseError(f"Category is still referenced: {category_id}") from e
        return result.rowcount > 0


class SqlTransactionStorage(TransactionStorageInterface):

    def __init__(self, session: AsyncSession):
        self._session = session

    @wraps_storage_errors("add transaction")
    async def add(self, transaction: Transaction) -> Transaction:
        self._session.add(TransactionRow(
            id=transaction.id,
            account_id=transaction.account_id,
            category_id=transaction.category_id,
            amount=transaction.amount,
            timestamp=_as_utc_naive(transaction.timestamp),
            notes=transaction.notes,
        ))
        await self._session.flush()
        return transaction

    @wraps_storage_errors("get transaction")
    async def get_owned(
        self,
        transaction_id: UUID,
        user_id: UUID,
        for_update: bool = False,
    ) -> Optional[Transaction]:
        query = (
            select(TransactionRow)
            .join(AccountRow, TransactionRow.account_id == AccountRow.id)
            .where(
                TransactionRow.id == transaction_id,
                AccountRow.user_id == user_id,
            )
        )
        if for_update:
            # Renders nothing on SQLite, which locks the whole file on write
            query = query.with_for_update(of=TransactionRow)

        result = await self._session.execute(query)
        row = result.scalar_one_or_none()
        return Transaction.model_validate(row) if row else None

    @staticmethod
    def _matches(expected: Transaction):
        return (
            TransactionRow.id == expected.id,
            TransactionRow.account_id == expected.account_id,
            TransactionRow.amount == expected.amount,
        )

    @wraps_storage_errors("update transaction")
    async def update(self, transaction: Transaction, expected: Transaction) -> bool:
        result = await self._session.execute(
            update(TransactionRow)
            .where(*self._matches(expected))
            .values(
                account_id=transaction.account_id,
                category_id=transaction.category_id,
                amount=transaction.amount,
                timestamp=_as_utc_naive(transaction.timestamp),
                notes=transaction.notes,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @wraps_storage_errors("delete transaction")
    async def delete(self, expected: Transaction) -> bool:
        result = await self._session.execute(
            delete(TransactionRow).where(*self._matches(expected))
        )
        return result.rowcount > 0

    @wraps_storage_errors("list transactions")
    async def list_for_user(self, user_id: UUID) -> list[Transaction]:
        result = await self._session.execute(
            select(TransactionRow)
            .join(AccountRow, TransactionRow.account_id == AccountRow.id)
            .where(AccountRow.user_id == user_id)
            .order_by(TransactionRow.timestamp.desc(), TransactionRow.id)
        )
        return [Transaction.model_validate(row) for row in result.scalars()]

    @wraps_storage_errors("check category usage")
    async def exists_for_category(self, category_id: UUID) -> bool:
        result = await self._session.execute(
            select(exists().where(TransactionRow.category_id == category_id))
        )
        return bool(result.scalar())


class SqlUnitOfWork(UnitOfWork):
    """
    One AsyncSession inside one database transaction.

    Commits on a clean exit, rolls back on any exception. asyncio
    cancellation arrives as an exception too, so a cancelled request
    never commits half of its writes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SqlUnitOfWork":
        self._session = self._session_factory()
        await self._session.begin()
        self.users = SqlUserStorage(self._session)
        self.accounts = SqlAccountStorage(self._session)
        self.categories = SqlCategoryStorage(self._session)
        self.transactions = SqlTransactionStorage(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                try:
                    await self._session.commit()
                except SQLAlchemyError as e:
                    raise StorageError(f"Failed to commit: {e}") from e
            else:
                await self._session.rollback()
                logger.debug("unit_of_work_rolled_back", error_type=exc_type.__name__)
        finally:
            await self._session.close()
            self._session = None
