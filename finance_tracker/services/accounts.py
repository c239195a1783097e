"""
Account Service

Ownership-scoped CRUD for accounts.

IMPORTANT: Editing an account sets its balance to the value in the
request (an absolute override). This is the only place outside the
ledger where a balance is written, and it never goes through
apply_delta.
"""

from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.finance import (
    Account,
    AccountCreateRequest,
    AccountDto,
    AccountUpdateRequest,
)
from finance_tracker.services.storage import UnitOfWork


logger = structlog.get_logger(__name__)


class AccountService:
    """Create, edit, list and delete the accounts of one user."""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self._uow_factory = uow_factory

    async def create_account(
        self,
        request: AccountCreateRequest,
        user_id: UUID,
    ) -> UUID:
        """Store a new account and return its id. The request balance is the base value."""
        account = Account(
            id=uuid4(),
            user_id=user_id,
            name=request.name,
            account_type=request.account_type,
            balance=request.balance,
        )
        async with self._uow_factory() as uow:
            await uow.accounts.add(account)

        logger.info(
            "account_created",
            account_id=str(account.id),
            user_id=str(user_id),
            account_type=account.account_type.value,
        )
        return account.id

    async def update_account(
        self,
        request: AccountUpdateRequest,
        user_id: UUID,
    ) -> bool:
        """
        Overwrite name, type and balance.

        Returns:
            False if the account does not exist or is not the user's
        """
        async with self._uow_factory() as uow:
            existing = await uow.accounts.get_owned(request.id, user_id)
            if existing is None:
                logger.warning(
                    "account_update_rejected",
                    account_id=str(request.id),
                    user_id=str(user_id),
                )
                return False

            await uow.accounts.update(existing.model_copy(update={
                "name": request.name,
                "account_type": request.account_type,
                "balance": request.balance,
            }))

        logger.info("account_updated", account_id=str(request.id), user_id=str(user_id))
        return True

    async def get_all_accounts(self, user_id: UUID) -> list[AccountDto]:
        async with self._uow_factory() as uow:
            accounts = await uow.accounts.list_for_user(user_id)
        return [AccountDto.from_account(a) for a in accounts]

    async def get_account(self, account_id: UUID, user_id: UUID) -> Optional[AccountDto]:
        async with self._uow_factory() as uow:
            account = await uow.accounts.get_owned(account_id, user_id)
        return AccountDto.from_account(account) if account else None

    async def delete_account(self, account_id: UUID, user_id: UUID) -> bool:
        """
        Delete an owned account together with all of its transactions.

        Returns:
            False if the account does not exist or is not the user's
        """
        async with self._uow_factory() as uow:
            deleted = await uow.accounts.delete_owned(account_id, user_id)

        if deleted:
            logger.info("account_deleted", account_id=str(account_id), user_id=str(user_id))
        else:
            logger.warning(
                "account_delete_rejected",
                account_id=str(account_id),
                user_id=str(user_id),
            )
        return deleted
