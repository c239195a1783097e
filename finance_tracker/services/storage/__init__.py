"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements SQLAlchemy (async) as the backend, but designed to be swappable.
"""

from finance_tracker.services.storage.interface import (
    AccountStorageInterface,
    BalanceOutOfRangeError,
    CategoryStorageInterface,
    ConcurrentWriteError,
    ConnectionError,
    DuplicateError,
    InUseError,
    StorageError,
    TransactionStorageInterface,
    UnitOfWork,
    UserStorageInterface,
)
from finance_tracker.services.storage.database import Database
from finance_tracker.services.storage.sql_storage import (
    SqlAccountStorage,
    SqlCategoryStorage,
    SqlTransactionStorage,
    SqlUnitOfWork,
    SqlUserStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "CategoryStorageInterface",
    "TransactionStorageInterface",
    "UnitOfWork",
    "UserStorageInterface",
    # Exceptions
    "BalanceOutOfRangeError",
    "ConcurrentWriteError",
    "ConnectionError",
    "DuplicateError",
    "InUseError",
    "StorageError",
    # SQLAlchemy implementation
    "Database",
    "SqlAccountStorage",
    "SqlCategoryStorage",
    "SqlTransactionStorage",
    "SqlUnitOfWork",
    "SqlUserStorage",
]
