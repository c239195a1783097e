"""
Health Service

Reports whether the API is up and which database it talks to.
A database that cannot be asked for its version does not make the
API unhealthy; the version is reported as "Unknown" instead.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError

from finance_tracker.models.finance import HealthCheckResult
from finance_tracker.services.storage import Database


logger = structlog.get_logger(__name__)

UNKNOWN_VERSION = "Unknown"


class HealthService:

    def __init__(self, database: Database):
        self._database = database

    async def check_health(self) -> HealthCheckResult:
        result = HealthCheckResult(is_healthy=True)

        try:
            result.database_version = await self._database.server_version()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("database_version_unavailable", error=str(e))
            result.database_version = UNKNOWN_VERSION

        return result
