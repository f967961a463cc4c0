from __future__ import annotations

import asyncio
import logging
from typing import Optional

from geodb_init.models.provision import ProvisionResult
from geodb_init.services.config import ProvisionConfig
from geodb_init.services.secrets_service import SecretsService
from geodb_init.services.setup.database_setup_service import DatabaseSetupService


logger = logging.getLogger(__name__)


class ProvisionServiceError(RuntimeError):
    pass


class ProvisionService:
    def __init__(self, *, config: ProvisionConfig, secrets: SecretsService, setup: DatabaseSetupService) -> None:
        self._config = config
        self._secrets = secrets
        self._setup = setup

    @property
    def timeout_seconds(self) -> float:
        return self._config.timeout_seconds

    async def provision(self) -> None:
        """Resolve all credential bundles, then run the database setup.

        Secrets are resolved up front so a bad secret id fails before any
        database connection is opened.
        """

        bundles = await self._secrets.get_bundles(self._config)
        await self._setup.setup_database(bundles)

    async def run(self, *, timeout_seconds: Optional[float] = None) -> ProvisionResult:
        """Run provisioning once and report a success/failure result.

        This is the single error boundary: nothing escapes as an exception.
        """

        budget = timeout_seconds if timeout_seconds is not None else self._config.timeout_seconds
        try:
            await asyncio.wait_for(self.provision(), timeout=budget)
        except asyncio.TimeoutError:
            logger.error("Provisioning of %s exceeded its time budget (%.1fs)", self._config.db_name, budget)
            return ProvisionResult.failed()
        except Exception:
            logger.exception("Provisioning of %s failed", self._config.db_name)
            return ProvisionResult.failed()

        return ProvisionResult.ok()

    async def run_or_raise(self, *, timeout_seconds: Optional[float] = None) -> ProvisionResult:
        result = await self.run(timeout_seconds=timeout_seconds)
        if not result.succeeded:
            raise ProvisionServiceError(result.message)
        return result
