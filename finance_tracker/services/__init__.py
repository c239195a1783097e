"""
Services Package

Ownership-scoped account and category CRUD, authentication and the
health check. Storage lives in finance_tracker.services.storage.
"""

from finance_tracker.services.accounts import AccountService
from finance_tracker.services.auth import AuthService, hash_password, verify_password
from finance_tracker.services.categories import CategoryService
from finance_tracker.services.health import HealthService

__all__ = [
    "AccountService",
    "AuthService",
    "CategoryService",
    "HealthService",
    "hash_password",
    "verify_password",
]
