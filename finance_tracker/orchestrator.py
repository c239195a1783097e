"""
Main Orchestrator for Finance Tracker

This module wires every component together with plain constructor
injection:

    Database -> unit of work factory -> services / write coordinator

DESIGN DECISION: There is no container and no runtime lookup. Each
service receives the unit of work factory it writes through, and the
write coordinator additionally receives the shared ledger event logger.

The HTTP layer only ever talks to the objects built here.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from finance_tracker.config import Settings, get_settings
from finance_tracker.events import LedgerEventLogger, configure_logging
from finance_tracker.ledger import TransactionWriteCoordinator
from finance_tracker.services import (
    AccountService,
    AuthService,
    CategoryService,
    HealthService,
)
from finance_tracker.services.storage import Database, SqlUnitOfWork, UnitOfWork


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a request handler needs."""
    database: Database
    accounts: AccountService
    categories: CategoryService
    transactions: TransactionWriteCoordinator
    auth: AuthService
    health: HealthService

    async def startup(self, settings: Optional[Settings] = None) -> None:
        """
        Connect to the database (with retries) and seed the admin user.

        Raises:
            ConnectionError: If the database stays unreachable
        """
        app_settings = (settings or get_settings()).app
        await self.database.connect()

        if app_settings.should_seed_admin:
            await self.auth.seed_admin(
                app_settings.seed_admin_email,
                app_settings.seed_admin_password,
            )

    async def shutdown(self) -> None:
        await self.database.dispose()
        logger.info("database_disposed")


def create_app_components(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from. Defaults to get_settings().
        database: Pre-built database, e.g. an in-memory one for tests.

    Returns:
        AppComponents with every service wired to the same database
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    database = database or Database(settings.database)

    def uow_factory() -> UnitOfWork:
        return SqlUnitOfWork(database.session_factory)

    event_logger = LedgerEventLogger()

    return AppComponents(
        database=database,
        accounts=AccountService(uow_factory),
        categories=CategoryService(uow_factory),
        transactions=TransactionWriteCoordinator(uow_factory, event_logger),
        auth=AuthService(uow_factory, settings.jwt),
        health=HealthService(database),
    )
