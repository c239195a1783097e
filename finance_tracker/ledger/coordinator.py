"""
Transaction Write Coordinator

Every transaction create, update and delete runs the same short pipeline:

    Validate -> Locate -> Mutate -> Rebalance

DESIGN DECISION: The whole pipeline runs inside ONE unit of work.
The transaction row and the balance change it implies commit together
or not at all. There is no window where a row exists without its
balance adjustment (or the other way round), whether the request fails,
the database errors out, or the asyncio task is cancelled mid-write.

CRITICAL: Ownership is checked before anything is written. For update
and delete, the transaction is located through its CURRENT account's
owner, so a guessed transaction id from another user is simply "not
found".

CRITICAL: Update and delete compute their balance delta from the row
they located, so the write itself is conditional on that row being
unchanged (same account, same amount). A concurrent writer that got
there first makes the condition fail; the row is then located again.
A row deleted in between is "not found" and nothing is rebalanced.

Moving a transaction to another account debits the old account by the
old amount and credits the new account by the new amount. Both
accounts keep balance == base + sum(transactions). Account balances
are always touched in ascending id order.

Success events are logged after the unit of work has committed.

Expected failures (not owned, not found) are returned as None/False.
Only infrastructure failures raise.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional
from uuid import UUID, uuid4

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from finance_tracker.events import LedgerEventLogger, create_correlation_id
from finance_tracker.ledger.balance import BalanceLedgerUpdater
from finance_tracker.models.finance import (
    Transaction,
    TransactionCreateRequest,
    TransactionDto,
    TransactionUpdateRequest,
)
from finance_tracker.services.storage import ConcurrentWriteError, UnitOfWork
from finance_tracker.validation import OwnershipValidator


# How often a write may find its row changed underneath it
STALE_ROW_ATTEMPTS = 3


class TransactionWriteCoordinator:
    """
    Orchestrates transaction writes plus their balance adjustment.

    Args:
        uow_factory: Returns a fresh, unopened unit of work per call
        event_logger: Receives one ledger event per step worth tracing
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._uow_factory = uow_factory
        self._event_logger = event_logger or LedgerEventLogger()

    @asynccontextmanager
    async def _unit_of_work(
        self,
        operation: str,
        correlation_id: UUID,
    ) -> AsyncIterator[UnitOfWork]:
        try:
            async with self._uow_factory() as uow:
                yield uow
        except (Exception, asyncio.CancelledError) as e:
            self._event_logger.log_write_rolled_back(
                operation=operation,
                error_message=str(e) or type(e).__name__,
                correlation_id=correlation_id,
            )
            raise

    def _validator(self, uow: UnitOfWork) -> OwnershipValidator:
        return OwnershipValidator(uow.accounts, uow.categories, self._event_logger)

    def _ledger(self, uow: UnitOfWork) -> BalanceLedgerUpdater:
        return BalanceLedgerUpdater(uow.accounts, self._event_logger)

    async def _owns_account_and_category(
        self,
        uow: UnitOfWork,
        account_id: UUID,
        category_id: UUID,
        user_id: UUID,
        correlation_id: UUID,
    ) -> bool:
        validator = self._validator(uow)
        if not await validator.validate_account_ownership(
            account_id, user_id, correlation_id
        ):
            return False
        return await validator.validate_category_ownership(
            category_id, user_id, correlation_id
        )

    async def _locate_and_write(
        self,
        uow: UnitOfWork,
        transaction_id: UUID,
        user_id: UUID,
        write: Callable[[Transaction], Awaitable[bool]],
    ) -> Optional[Transaction]:
        """
        Locate the user's transaction and write against exactly that state.

        Returns:
            The state that was overwritten, or None if the transaction
            is missing or not the user's

        Raises:
            ConcurrentWriteError: If the row keeps changing underneath
        """
        async def attempt() -> Optional[Transaction]:
            existing = await uow.transactions.get_owned(
                transaction_id, user_id, for_update=True
            )
            if existing is None:
                return None
            if not await write(existing):
                raise ConcurrentWriteError(
                    f"Transaction {transaction_id} changed while being written"
                )
            return existing

        return await retry(
            stop=stop_after_attempt(STALE_ROW_ATTEMPTS),
            retry=retry_if_exception_type(ConcurrentWriteError),
            reraise=True,
        )(attempt)()

    async def create(
        self,
        request: TransactionCreateRequest,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """
        Book a new transaction and add its amount to the account balance.

        Returns:
            The new transaction id, or None if the account or category
            does not belong to the user (nothing is written)
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._unit_of_work("create_transaction", correlation_id) as uow:
            # Step 1: Validate
            if not await self._owns_account_and_category(
                uow, request.account_id, request.category_id, user_id, correlation_id
            ):
                return None

            # Step 2: Mutate
            transaction = Transaction(
                id=uuid4(),
                account_id=request.account_id,
                category_id=request.category_id,
                amount=request.amount,
                timestamp=request.timestamp,
                notes=request.notes,
            )
            await uow.transactions.add(transaction)

            # Step 3: Rebalance
            ledger = self._ledger(uow)
            await ledger.apply_delta(
                transaction.account_id, transaction.amount, correlation_id
            )

        ledger.log_applied()
        self._event_logger.log_transaction_created(
            transaction_id=transaction.id,
            account_id=transaction.account_id,
            amount=transaction.amount,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return transaction.id

    async def update(
        self,
        request: TransactionUpdateRequest,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Overwrite a transaction and rebalance by the change in amount.

        The delta is always computed from the amount stored right before
        this update, never from the amount the transaction was created with.

        Returns:
            False if the target account, the category or the existing
            transaction is not the user's (nothing is written)
        """
        correlation_id = correlation_id or create_correlation_id()
        updated = Transaction(
            id=request.id,
            account_id=request.account_id,
            category_id=request.category_id,
            amount=request.amount,
            timestamp=request.timestamp,
            notes=request.notes,
        )

        async with self._unit_of_work("update_transaction", correlation_id) as uow:
            # Step 1: Validate
            if not await self._owns_account_and_category(
                uow, request.account_id, request.category_id, user_id, correlation_id
            ):
                return False

            # Step 2: Locate and mutate
            existing = await self._locate_and_write(
                uow,
                request.id,
                user_id,
                lambda current: uow.transactions.update(updated, expected=current),
            )
            if existing is None:
                self._event_logger.log_transaction_not_found(
                    transaction_id=request.id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
                return False

            # Step 3: Rebalance
            if existing.account_id == updated.account_id:
                deltas = {updated.account_id: updated.amount - existing.amount}
            else:
                deltas = {
                    existing.account_id: -existing.amount,
                    updated.account_id: updated.amount,
                }
            ledger = self._ledger(uow)
            for account_id in sorted(deltas):
                await ledger.apply_delta(account_id, deltas[account_id], correlation_id)

        ledger.log_applied()
        if existing.account_id != updated.account_id:
            self._event_logger.log_transaction_moved(
                transaction_id=updated.id,
                from_account_id=existing.account_id,
                to_account_id=updated.account_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        self._event_logger.log_transaction_updated(
            transaction_id=updated.id,
            account_id=updated.account_id,
            old_amount=existing.amount,
            new_amount=updated.amount,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return True

    async def delete(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Remove a transaction and reverse its effect on the balance.

        Returns:
            False if the transaction does not exist or is not the user's.
            Of two concurrent deletes of one transaction, only one
            returns True.
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._unit_of_work("delete_transaction", correlation_id) as uow:
            # Step 1: Locate and mutate (ownership comes with it)
            existing = await self._locate_and_write(
                uow, transaction_id, user_id, uow.transactions.delete
            )
            if existing is None:
                self._event_logger.log_transaction_not_found(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
                return False

            # Step 2: Rebalance
            ledger = self._ledger(uow)
            await ledger.apply_delta(
                existing.account_id, -existing.amount, correlation_id
            )

        ledger.log_applied()
        self._event_logger.log_transaction_deleted(
            transaction_id=existing.id,
            account_id=existing.account_id,
            amount=existing.amount,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return True

    async def get_all(self, user_id: UUID) -> list[TransactionDto]:
        """Every transaction on the user's accounts. No side effects."""
        async with self._uow_factory() as uow:
            transactions = await uow.transactions.list_for_user(user_id)
        return [TransactionDto.from_transaction(t) for t in transactions]
