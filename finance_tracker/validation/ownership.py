"""
Ownership Validation

Answers one question: does this account (or category) belong to this user?

IMPORTANT: The answer is a plain bool. A missing id and an id owned by
somebody else both produce False, so callers cannot use it to discover
which ids exist. Nothing here raises for "not found".

The checks are existence queries scoped by owner; the entity itself is
never loaded.
"""

from typing import Optional
from uuid import UUID

from finance_tracker.events import LedgerEventLogger
from finance_tracker.services.storage import (
    AccountStorageInterface,
    CategoryStorageInterface,
)


class OwnershipValidator:
    """
    Read-only ownership checks used as preconditions by the write path.

    Bound to the repositories of one unit of work so the checks see the
    same database transaction as the writes that follow them.
    """

    def __init__(
        self,
        accounts: AccountStorageInterface,
        categories: CategoryStorageInterface,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._accounts = accounts
        self._categories = categories
        self._event_logger = event_logger

    async def validate_account_ownership(
        self,
        account_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """True iff the account exists and belongs to the user."""
        owned = await self._accounts.exists_for_user(account_id, user_id)
        if not owned:
            self._rejected("account", account_id, user_id, correlation_id)
        return owned

    async def validate_category_ownership(
        self,
        category_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """True iff the category exists and belongs to the user."""
        owned = await self._categories.exists_for_user(category_id, user_id)
        if not owned:
            self._rejected("category", category_id, user_id, correlation_id)
        return owned

    def _rejected(
        self,
        resource: str,
        resource_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._event_logger:
            self._event_logger.log_ownership_rejected(
                resource=resource,
                resource_id=resource_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
