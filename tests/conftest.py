"""
Shared fixtures.

Every test gets its own in-memory SQLite database with a fresh schema.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import pytest

from finance_tracker.config import DatabaseSettings
from finance_tracker.events import LedgerEventLogger
from finance_tracker.ledger import TransactionWriteCoordinator
from finance_tracker.models.finance import (
    Account,
    AccountType,
    Category,
    User,
)
from finance_tracker.services.storage import Database, SqlUnitOfWork


MEMORY_URL = "sqlite+aiosqlite://"


@dataclass
class Owner:
    """A user with one account and one category."""
    user_id: UUID
    account_id: UUID
    category_id: UUID


async def create_owner(
    uow_factory,
    email: str,
    balance: Decimal = Decimal("100.00"),
) -> Owner:
    user = User(email=email, password_hash="not-a-real-hash")
    account = Account(
        user_id=user.id,
        name="Wallet",
        account_type=AccountType.CASH,
        balance=balance,
    )
    category = Category(user_id=user.id, name="Groceries")

    async with uow_factory() as uow:
        await uow.users.add(user)
        await uow.accounts.add(account)
        await uow.categories.add(category)

    return Owner(user_id=user.id, account_id=account.id, category_id=category.id)


async def add_account(uow_factory, user_id: UUID, balance: Decimal = Decimal("0.00")) -> UUID:
    account = Account(
        user_id=user_id,
        name="Bank",
        account_type=AccountType.BANK,
        balance=balance,
    )
    async with uow_factory() as uow:
        await uow.accounts.add(account)
    return account.id


async def balance_of(uow_factory, owner: Owner, account_id: UUID = None) -> Decimal:
    async with uow_factory() as uow:
        account = await uow.accounts.get_owned(account_id or owner.account_id, owner.user_id)
    return account.balance


@pytest.fixture
async def database():
    db = Database(DatabaseSettings(url=MEMORY_URL))
    await db.connect()
    yield db
    await db.dispose()


@pytest.fixture
def uow_factory(database):
    return lambda: SqlUnitOfWork(database.session_factory)


@pytest.fixture
def coordinator(uow_factory):
    return TransactionWriteCoordinator(uow_factory, LedgerEventLogger())


@pytest.fixture
async def alice(uow_factory) -> Owner:
    return await create_owner(uow_factory, "alice@finance.io")


@pytest.fixture
async def bob(uow_factory) -> Owner:
    return await create_owner(uow_factory, "bob@finance.io")
