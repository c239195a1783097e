"""
Balance Ledger Updater

Applies a signed delta to one account's cached balance.

CRITICAL: The update is a single storage-level expression
(balance = balance + :delta), never read-then-write. Two concurrent
writers on the same account are serialized by the database row lock,
so neither update is lost.

There is no floor: overspending a cash account is a legitimate negative
balance, not an error. The only bound is what decimal(18,2) can hold.

Successful adjustments are only logged through log_applied(), which
the caller invokes once its unit of work has committed.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.events import LedgerEventLogger
from finance_tracker.services.storage import AccountStorageInterface


class BalanceLedgerUpdater:
    """
    Single writer path for incremental balance changes.

    Bound to the account repository of one unit of work, so the
    balance change commits or rolls back together with the
    transaction row that caused it.
    """

    def __init__(
        self,
        accounts: AccountStorageInterface,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._accounts = accounts
        self._event_logger = event_logger
        self._applied: list[tuple[UUID, Decimal, Optional[UUID]]] = []

    async def apply_delta(
        self,
        account_id: UUID,
        delta: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Add delta to the account balance.

        Returns:
            False if the account no longer exists. Callers treat this as
            "nothing to update", not as a failure of their own write.

        Raises:
            BalanceOutOfRangeError: If the result would not fit decimal(18,2)
        """
        updated = await self._accounts.increment_balance(account_id, delta)

        if updated:
            self._applied.append((account_id, delta, correlation_id))
        elif self._event_logger:
            self._event_logger.log_balance_target_missing(
                account_id=account_id,
                delta=delta,
                correlation_id=correlation_id,
            )

        return updated

    def log_applied(self) -> None:
        """Log every delta applied so far. Call after the commit."""
        if self._event_logger:
            for account_id, delta, correlation_id in self._applied:
                self._event_logger.log_balance_adjusted(
                    account_id=account_id,
                    delta=delta,
                    correlation_id=correlation_id,
                )
        self._applied.clear()
